"""旧格式锁文件迁移

旧格式为纯文本，每行一条声明:

    cookbook 'nginx', :locked_version => '2.7.6'
    cookbook "app", path: "cookbooks/app", locked_version: "0.1.0"

按小语法逐行解析（不执行文件内容）:
    line   := "cookbook" STRING ("," option)*
    option := LABEL value | SYMBOL "=>" value
    value  := STRING | SYMBOL | "nil"

输出与 JSON 锁文件相同的 {sha, sources} 结构，sha 为 None 以强制重新计算。
任何一行解析失败都会使整个文件解析失败。
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from cookshelf.core.dep.dependency import VALID_OPTIONS
from cookshelf.core.exceptions import LockfileParseError

if TYPE_CHECKING:
    from cookshelf.core.protocols import SpecFile

logger = logging.getLogger(__name__)

DIRECTIVE = "cookbook"

# 旧格式特征：某行以 cookbook '<name>' 开头
LEGACY_SIGNATURE_RE = re.compile(r"""^cookbook ["'](.+)["']""", re.MULTILINE)

_TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
      | (?P<arrow>=>)
      | (?P<label>[A-Za-z_]\w*):(?!:)
      | (?P<symbol>:[A-Za-z_]\w*)
      | (?P<comma>,)
      | (?P<word>[A-Za-z_]\w*)
    )""",
    re.VERBOSE,
)


def is_legacy(content: str) -> bool:
    return LEGACY_SIGNATURE_RE.search(content) is not None


def _tokenize(line: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    end = len(line.rstrip())
    while pos < end:
        m = _TOKEN_RE.match(line, pos)
        if m is None or m.end() == pos:
            raise ValueError(f"无法识别的字符: {line[pos:].strip()[:20]!r}")
        kind = m.lastgroup or ""
        tokens.append((kind, m.group(kind)))
        pos = m.end()
    return tokens


def _unquote(raw: str) -> str:
    return re.sub(r"\\(.)", r"\1", raw[1:-1])


def _parse_value(kind: str, raw: str) -> str | None:
    if kind == "string":
        return _unquote(raw)
    if kind == "symbol":
        return raw[1:]
    if kind == "word" and raw == "nil":
        return None
    raise ValueError(f"无效的值: {raw}")


def parse_line(line: str) -> tuple[str, dict[str, Any]]:
    """解析单行声明，返回 (name, options)；语法错误抛出 ValueError"""
    tokens = _tokenize(line)
    if len(tokens) < 2 or tokens[0] != ("word", DIRECTIVE) or tokens[1][0] != "string":
        raise ValueError(f"应以 {DIRECTIVE} '<name>' 开头")
    name = _unquote(tokens[1][1])
    options: dict[str, Any] = {}

    rest = tokens[2:]
    i = 0
    while i < len(rest):
        if rest[i][0] != "comma":
            raise ValueError(f"缺少逗号: {rest[i][1]}")
        i += 1
        if i >= len(rest):
            raise ValueError("逗号后缺少选项")
        kind, raw = rest[i]
        if kind == "label":
            key = raw
            i += 1
        elif kind == "symbol" and i + 1 < len(rest) and rest[i + 1][0] == "arrow":
            key = raw[1:]
            i += 2
        else:
            raise ValueError(f"无效的选项名: {raw}")
        if i >= len(rest):
            raise ValueError(f"选项 {key} 缺少值")
        if key not in VALID_OPTIONS:
            raise ValueError(f"未知的选项: {key}")
        value = _parse_value(*rest[i])
        i += 1
        if value is not None:
            options[key] = value

    return name, options


class LockfileLegacy:
    """旧格式锁文件解析器"""

    @classmethod
    def parse(cls, cookfile: SpecFile, content: str) -> dict[str, Any]:
        sources: dict[str, dict[str, Any]] = {}
        for lineno, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                name, options = parse_line(line)
            except ValueError as e:
                raise LockfileParseError(
                    f"旧格式锁文件第 {lineno} 行无法解析: {line.strip()!r} ({e})"
                ) from e
            sources[name] = cls._reconcile(cookfile, name, options)

        logger.info("旧格式锁文件已转换: %d 个 cookbook", len(sources))
        return {"sha": None, "sources": sources}

    @staticmethod
    def _reconcile(cookfile: SpecFile, name: str, options: dict[str, Any]) -> dict[str, Any]:
        """path 以当前 Cookfile 的声明为准，未声明时保留旧值"""
        if options.get("path"):
            declared = cookfile.find(name)
            declared_path = declared.options.get("path") if declared is not None else None
            if declared_path:
                options["path"] = declared_path
        return options
