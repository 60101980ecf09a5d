# dt_core/screening/panels.py
"""
Substance catalogue: which codes each panel can detect, plus display names.
"""
from __future__ import annotations

from dt_core.screening.constants import TestType

NO_SUBSTANCE = "none"

SUBSTANCE_LABELS: dict[str, str] = {
    "6-mam": "6-MAM (Heroin)",
    "alcohol": "Alcohol (Ethanol)",
    "amphetamines": "Amphetamines",
    "barbiturates": "Barbiturates",
    "benzodiazepines": "Benzodiazepines",
    "buprenorphine": "Buprenorphine",
    "cocaine": "Cocaine",
    "etg": "EtG (Alcohol)",
    "fentanyl": "Fentanyl",
    "kratom": "Kratom",
    "mdma": "MDMA (Ecstasy)",
    "methadone": "Methadone",
    "methamphetamines": "Methamphetamines",
    "opiates": "Opiates",
    "oxycodone": "Oxycodone",
    "pcp": "PCP",
    "propoxyphene": "Propoxyphene",
    "synthetic_cannabinoids": "Synthetic Cannabinoids",
    "thc": "THC",
    "tramadol": "Tramadol",
    "tricyclic_antidepressants": "Tricyclic Antidepressants",
}

PANEL_SUBSTANCES: dict[str, frozenset[str]] = {
    TestType.PANEL_15_INSTANT: frozenset({
        "6-mam", "amphetamines", "benzodiazepines", "buprenorphine", "cocaine",
        "etg", "fentanyl", "mdma", "methadone", "methamphetamines", "opiates",
        "oxycodone", "synthetic_cannabinoids", "thc", "tramadol",
    }),
    TestType.PANEL_11_LAB: frozenset({
        "amphetamines", "benzodiazepines", "buprenorphine", "cocaine", "etg",
        "fentanyl", "kratom", "methadone", "opiates", "thc",
    }),
    # ethanol (current intoxication), not EtG
    TestType.PANEL_17_SOS_LAB: frozenset({
        "alcohol", "amphetamines", "barbiturates", "benzodiazepines", "buprenorphine",
        "cocaine", "mdma", "methadone", "opiates", "oxycodone", "pcp",
        "propoxyphene", "thc", "tricyclic_antidepressants",
    }),
    TestType.ETG_LAB: frozenset({"etg"}),
}


def panel_substances(test_type: str | None) -> frozenset[str] | None:
    """
    Codes the panel screens for; None means "no panel scope" (all substances).
    """
    if not test_type:
        return None
    return PANEL_SUBSTANCES.get(test_type)


def substance_label(code: str) -> str:
    return SUBSTANCE_LABELS.get(code, code)


def substance_labels(codes) -> list[str]:
    return [substance_label(c) for c in codes]
