"""
picks one value per field out of independently derived candidates

each field has its own precedence list; a field's anchor never affects
another field. missing candidates are None, the first present one wins.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from loguru import logger

from bureau.domain_knowledge import CLEAN_DPD

ANCHOR = "anchor"
RULE_SUM = "rule_sum"
RULE = "rule"
EXTERNAL = "external"
DEFAULT = "default"

# camelCase spellings accepted from callers that speak the JSON schema
SOURCE_ALIASES = {RULE_SUM: "ruleSum"}

TOTALS_PRECEDENCE = (ANCHOR, RULE_SUM, EXTERNAL)

# field -> candidate sources, highest precedence first
DEFAULT_STRATEGY = {
    "loanSanctioned": TOTALS_PRECEDENCE,
    "loanOutstanding": TOTALS_PRECEDENCE,
    "cardLimit": TOTALS_PRECEDENCE,
    "cardOutstanding": TOTALS_PRECEDENCE,
    "score": (RULE, EXTERNAL),
    "enquiryCount": (RULE, EXTERNAL),
    "dpd": (RULE, EXTERNAL),
}

DEFAULTS = {
    "loanSanctioned": 0.0,
    "loanOutstanding": 0.0,
    "cardLimit": 0.0,
    "cardOutstanding": 0.0,
    "score": None,
    "enquiryCount": 0,
    "dpd": CLEAN_DPD,
}


@dataclass
class Decision:
    value: Any
    source: str


def reconcile(candidates: Mapping[str, Any], default: Any = 0,
              precedence: Sequence[str] = TOTALS_PRECEDENCE) -> Any:
    """first present candidate in precedence order, else `default`"""
    return pick(candidates, default, precedence).value


def pick(candidates: Mapping[str, Any], default: Any = 0,
         precedence: Sequence[str] = TOTALS_PRECEDENCE) -> Decision:
    for source in precedence:
        value = candidates.get(source)
        if value is None and source in SOURCE_ALIASES:
            value = candidates.get(SOURCE_ALIASES[source])
        if value is not None:
            return Decision(value=value, source=source)
    return Decision(value=default, source=DEFAULT)


@dataclass
class Reconciler:
    """per-field precedence table, overridable per pipeline"""
    strategy: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_STRATEGY))
    defaults: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULTS))

    def __post_init__(self):
        # partial overrides keep the stock precedence for other fields
        merged = dict(DEFAULT_STRATEGY)
        merged.update(self.strategy)
        self.strategy = {name: tuple(order) for name, order in merged.items()}
        merged_defaults = dict(DEFAULTS)
        merged_defaults.update(self.defaults)
        self.defaults = merged_defaults

    def decide(self, field_name: str, candidates: Mapping[str, Any]) -> Decision:
        precedence = self.strategy.get(field_name, TOTALS_PRECEDENCE)
        decision = pick(candidates, self.defaults.get(field_name), precedence)
        logger.debug(f"{field_name}: {decision.value} from {decision.source}")
        return decision

    def decide_all(self, candidates_by_field: Mapping[str, Mapping[str, Any]]) -> Dict[str, Decision]:
        return {
            field_name: self.decide(field_name, candidates)
            for field_name, candidates in candidates_by_field.items()
        }

    @staticmethod
    def has_candidate(candidates: Optional[Mapping[str, Any]]) -> bool:
        return bool(candidates) and any(v is not None for v in candidates.values())
