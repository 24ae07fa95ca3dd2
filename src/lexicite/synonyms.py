# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Static query-expansion tables for the supported compliance sectors.
Plain data loaded once at import; expand_terms() only does lookups.
"""
from .index import tokenize

SECTORS = ("ndis", "transport", "healthcare", "aged_care", "workplace", "construction")

SYNONYMS: dict[str, tuple[str, ...]] = {
    "participant": ("client", "customer", "service user"),
    "provider": ("supplier", "service provider", "registered provider"),
    "plan": ("funding plan", "support plan", "ndis plan"),
    "support": ("assistance", "service", "help", "care"),
    "compliance": ("conformance", "adherence", "regulatory"),
    "audit": ("review", "assessment", "inspection", "evaluation"),
    "incident": ("event", "occurrence", "accident", "reportable"),
    "worker": ("staff", "employee", "support worker", "carer"),
    "screening": ("check", "clearance", "verification", "wwcc"),
    "rights": ("entitlements", "protections", "safeguards"),
    "complaint": ("grievance", "feedback", "concern"),
    "medication": ("medicine", "drugs", "pharmaceutical"),
    "restraint": ("restrictive practice", "restriction"),
    "fatigue": ("rest", "work diary", "driving hours"),
    "hazard": ("risk", "danger", "unsafe"),
    "resident": ("consumer", "care recipient"),
    "patient": ("consumer", "care recipient"),
    "employer": ("pcbu", "business", "person conducting"),
    "dismissal": ("termination", "unfair dismissal"),
    "wages": ("pay", "award", "remuneration"),
    "scaffolding": ("scaffold", "working at heights"),
}

ACRONYMS: dict[str, str] = {
    "ndis": "national disability insurance scheme",
    "ndia": "national disability insurance agency",
    "hvnl": "heavy vehicle national law",
    "nhvr": "national heavy vehicle regulator",
    "nhvas": "national heavy vehicle accreditation scheme",
    "cor": "chain of responsibility",
    "nsqhs": "national safety and quality health service",
    "whs": "work health and safety",
    "ohs": "occupational health and safety",
    "pcbu": "person conducting a business or undertaking",
    "swms": "safe work method statement",
    "wwcc": "working with children check",
    "ppe": "personal protective equipment",
    "fwa": "fair work act",
    "nes": "national employment standards",
    "acqsc": "aged care quality and safety commission",
}

SECTOR_TERMS: dict[str, tuple[str, ...]] = {
    "ndis": ("NDIS", "participant", "disability", "support", "provider", "practice standard"),
    "transport": ("HVNL", "heavy vehicle", "fatigue", "chain of responsibility"),
    "healthcare": ("NSQHS", "clinical", "patient", "safety", "quality"),
    "aged_care": ("aged care", "resident", "quality standard", "dignity"),
    "workplace": ("WHS", "workplace", "safety", "hazard", "risk", "PCBU"),
    "construction": ("construction", "SWMS", "high risk", "scaffolding"),
}


def _lookup(term: str) -> list[str]:
    phrases = list(SYNONYMS.get(term, ()))
    if term in ACRONYMS:
        phrases.append(ACRONYMS[term])
    if not phrases and term.endswith("s"):
        singular = term[:-1]
        phrases = list(SYNONYMS.get(singular, ()))
        if singular in ACRONYMS:
            phrases.append(ACRONYMS[singular])
    return phrases


def expand_terms(terms: list[str]) -> list[str]:
    """Union each term with its synonym/acronym tokens. Order-stable, no duplicates."""
    expanded: dict[str, None] = {}
    for term in terms:
        expanded.setdefault(term)
    for term in terms:
        for phrase in _lookup(term):
            for token in tokenize(phrase):
                expanded.setdefault(token)
    return list(expanded)


def sector_hints(sector: str | None, limit: int = 3) -> list[str]:
    if not sector:
        return []
    return list(SECTOR_TERMS.get(sector, ()))[:limit]
