"""cookshelf - cookbook 依赖拉取与锁文件管理"""

__version__ = "0.3.0"
