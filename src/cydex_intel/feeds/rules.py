"""
Ordered keyword rules for classifying threat intelligence text.

Each table is a list of (pattern, result) rules. Severity and threat type
take the first rule that matches; categories take every rule that matches.
Patterns run against lower-cased text and match anywhere in it, so "apt"
also fires inside longer words. Rule order is the precedence order.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern


@dataclass(frozen=True)
class Rule:
    pattern: Pattern[str]
    result: str

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _rule(pattern: str, result: str) -> Rule:
    return Rule(re.compile(pattern), result)


SEVERITY_RULES: List[Rule] = [
    _rule(r"critical|zero.?day|0.?day|rce|remote code execution|worm|ransomware", "critical"),
    _rule(r"high|exploit|vulnerability|malware|backdoor|trojan|apt|advanced persistent", "high"),
    _rule(r"medium|phishing|scam|breach|leak|security update", "medium"),
]

CATEGORY_RULES: List[Rule] = [
    _rule(r"malware|trojan|virus|worm|ransomware", "malware"),
    _rule(r"phishing|social engineering|scam", "phishing"),
    _rule(r"vulnerability|cve|exploit", "vulnerability"),
    _rule(r"ddos|denial of service", "ddos"),
    _rule(r"apt|advanced persistent threat", "apt"),
]

THREAT_TYPE_RULES: List[Rule] = [
    _rule(r"ransomware", "ransomware"),
    _rule(r"trojan", "trojan"),
    _rule(r"phishing", "phishing"),
    _rule(r"ddos", "ddos"),
    _rule(r"malware", "malware"),
    _rule(r"vulnerability|cve", "vulnerability"),
    _rule(r"apt|advanced persistent", "apt"),
    _rule(r"breach|leak", "data_breach"),
]

DEFAULT_THREAT_TYPE = "general"


def first_match(rules: Iterable[Rule], text: str, default: Optional[str] = None) -> Optional[str]:
    """Result of the first rule matching text, else default."""
    for rule in rules:
        if rule.matches(text):
            return rule.result
    return default


def all_matches(rules: Iterable[Rule], text: str) -> List[str]:
    """Results of every rule matching text, in rule order."""
    return [rule.result for rule in rules if rule.matches(text)]
