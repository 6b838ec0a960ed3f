# arch_provider/response_parser.py

import logging
import re
from typing import Callable, List, NamedTuple, Sequence

from arch_provider.base_utils import BaseUtils

logger = logging.getLogger("arch_provider")


class ParseRule(NamedTuple):
    label: str
    matches: Callable[[str], bool]
    extract: Callable[[str], List[str]]


def _regex_rule(label: str, pattern: str) -> ParseRule:
    """
    A rule whose whole-line regex carries the name in group 1.
    """
    rx = re.compile(pattern)

    def extract(line: str) -> List[str]:
        return [rx.fullmatch(line).group(1)]

    return ParseRule(label, lambda line: rx.fullmatch(line) is not None, extract)


_COMMA_SPLIT = re.compile(r",\s+")
# fewer items than this on one line is more likely prose than an enumeration
MIN_COMMA_ITEMS = 4


def _comma_rule() -> ParseRule:
    return ParseRule(
        "comma_list",
        lambda line: len(_COMMA_SPLIT.split(line)) >= MIN_COMMA_ITEMS,
        lambda line: _COMMA_SPLIT.split(line),
    )


# Order matters: the parenthetical and bold variants come before their plain
# counterparts, otherwise "(note)" or "**" ends up inside the captured name.
DEFAULT_RULES: Sequence[ParseRule] = (
    # 1. Name (note)   /   1. **Name** (note)
    _regex_rule("numbered_parenthetical", r"\d+\.\s+(?:\*\*)?(.+?)(?:\*\*)?\s*\(.*\)"),
    # 1. **Name**   /   1. **Name**: description
    _regex_rule("numbered_bold", r"\d+\.\s*\*\*(.*?)\*\*.*"),
    # 1. Name
    _regex_rule("numbered", r"\d+\.\s+(.*)"),
    # - **Name**   /   * **Name** - description
    _regex_rule("bullet_bold", r"[-*]\s+\*\*(.*?)\*\*.*"),
    # - Name   /   * Name
    _regex_rule("bullet", r"[-*]\s+(.*)"),
    # Name1, Name2, Name3, Name4
    _comma_rule(),
)


class ResponseParser(BaseUtils):
    """
    Turns one free-text model reply into the ordered list of candidate names.
    No normalization happens here; see NameSanitizer.
    """

    def __init__(self, rules: Sequence[ParseRule] = DEFAULT_RULES):
        self.rules = tuple(rules)

    def parse_line(self, line: str) -> List[str] | None:
        for rule in self.rules:
            if rule.matches(line):
                return rule.extract(line)
        return None

    def parse(self, text: str) -> List[str]:
        names: List[str] = []
        for raw_line in self.clean_triple_backticks(text).splitlines():
            line = raw_line.strip()
            if not line:
                continue
            captured = self.parse_line(line)
            if captured is None:
                logger.warning(f"Could not parse line: {line}")
                continue
            names.extend(captured)
        return names


_DEFAULT_PARSER = ResponseParser()


def parse_component_names(text: str) -> List[str]:
    return _DEFAULT_PARSER.parse(text)
