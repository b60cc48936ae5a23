"""Lookup data for fuzzy condition and location matching.

Kept as plain data so a deployment can extend or replace it from YAML
without touching the scorer.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

# keyword -> disease class / organ system
MEDICAL_KEYWORDS: dict[str, str] = {
    # cardiovascular
    "heart": "cardiovascular",
    "cardiac": "cardiovascular",
    "cardio": "cardiovascular",
    "cardiovascular": "cardiovascular",
    "coronary": "cardiovascular",
    "artery": "cardiovascular",
    "arterial": "cardiovascular",
    "aortic": "cardiovascular",
    "valve": "cardiovascular",
    "arrhythmia": "cardiovascular",
    "cardiomyopathy": "cardiovascular",
    # cerebrovascular / neurological
    "stroke": "neurological",
    "brain": "neurological",
    "neuro": "neurological",
    "neurological": "neurological",
    "seizure": "neurological",
    "epilepsy": "neurological",
    "parkinson": "neurological",
    "parkinson's": "neurological",
    "alzheimer": "neurological",
    "alzheimer's": "neurological",
    "dementia": "neurological",
    # renal
    "kidney": "renal",
    "renal": "renal",
    "dialysis": "renal",
    "nephropathy": "renal",
    # hepatic
    "liver": "hepatic",
    "hepatic": "hepatic",
    "cirrhosis": "hepatic",
    "hepatitis": "hepatic",
    # pulmonary
    "lung": "pulmonary",
    "lungs": "pulmonary",
    "pulmonary": "pulmonary",
    "respiratory": "pulmonary",
    "copd": "pulmonary",
    "asthma": "pulmonary",
    # oncology
    "cancer": "cancer",
    "tumor": "cancer",
    "tumour": "cancer",
    "carcinoma": "cancer",
    "sarcoma": "cancer",
    "leukemia": "cancer",
    "lymphoma": "cancer",
    "melanoma": "cancer",
    "myeloma": "cancer",
    "oncology": "cancer",
    "chemotherapy": "cancer",
    "chemo": "cancer",
    "metastatic": "cancer",
    "malignant": "cancer",
    # metabolic / endocrine
    "diabetes": "metabolic",
    "diabetic": "metabolic",
    "insulin": "metabolic",
    "thyroid": "metabolic",
    "obesity": "metabolic",
    # blood
    "anemia": "hematologic",
    "sickle": "hematologic",
    "hemophilia": "hematologic",
    # immune
    "lupus": "autoimmune",
    "autoimmune": "autoimmune",
    "arthritis": "autoimmune",
    "crohn's": "autoimmune",
    "crohn": "autoimmune",
    "colitis": "autoimmune",
    # transplant
    "transplant": "transplant",
    "organ": "transplant",
}

# canonical term -> related terms
CONDITION_SYNONYMS: dict[str, list[str]] = {
    "cancer": ["tumor", "tumour", "carcinoma", "sarcoma", "leukemia", "lymphoma", "melanoma",
               "myeloma", "malignancy", "neoplasm"],
    "mi": ["myocardial infarction", "heart attack"],
    "heart attack": ["myocardial infarction", "mi", "cardiac arrest"],
    "heart disease": ["cardiovascular disease", "coronary artery disease", "cad",
                      "heart failure", "cardiomyopathy"],
    "stroke": ["cerebrovascular accident", "cva", "brain bleed", "brain hemorrhage"],
    "diabetes": ["diabetic", "t1d", "t2d", "dm", "insulin resistance"],
    "high blood pressure": ["hypertension", "htn"],
    "kidney disease": ["renal failure", "kidney failure", "ckd", "esrd", "nephropathy"],
    "copd": ["chronic obstructive pulmonary disease", "emphysema", "chronic bronchitis"],
    "als": ["amyotrophic lateral sclerosis", "lou gehrig's disease", "lou gehrigs disease"],
    "ms": ["multiple sclerosis"],
    "alzheimer's": ["dementia", "alzheimers"],
}

# state full name -> abbreviations
US_STATES: dict[str, list[str]] = {
    "alabama": ["al", "ala"],
    "alaska": ["ak"],
    "arizona": ["az", "ariz"],
    "arkansas": ["ar", "ark"],
    "california": ["ca", "calif"],
    "colorado": ["co", "colo"],
    "connecticut": ["ct", "conn"],
    "delaware": ["de", "del"],
    "district of columbia": ["dc"],
    "florida": ["fl", "fla"],
    "georgia": ["ga"],
    "hawaii": ["hi"],
    "idaho": ["id"],
    "illinois": ["il", "ill"],
    "indiana": ["in", "ind"],
    "iowa": ["ia"],
    "kansas": ["ks", "kan"],
    "kentucky": ["ky"],
    "louisiana": ["la"],
    "maine": ["me"],
    "maryland": ["md"],
    "massachusetts": ["ma", "mass"],
    "michigan": ["mi", "mich"],
    "minnesota": ["mn", "minn"],
    "mississippi": ["ms", "miss"],
    "missouri": ["mo"],
    "montana": ["mt", "mont"],
    "nebraska": ["ne", "neb"],
    "nevada": ["nv", "nev"],
    "new hampshire": ["nh"],
    "new jersey": ["nj"],
    "new mexico": ["nm"],
    "new york": ["ny"],
    "north carolina": ["nc"],
    "north dakota": ["nd"],
    "ohio": ["oh"],
    "oklahoma": ["ok", "okla"],
    "oregon": ["or", "ore"],
    "pennsylvania": ["pa", "penn"],
    "rhode island": ["ri"],
    "south carolina": ["sc"],
    "south dakota": ["sd"],
    "tennessee": ["tn", "tenn"],
    "texas": ["tx", "tex"],
    "utah": ["ut"],
    "vermont": ["vt"],
    "virginia": ["va"],
    "washington": ["wa", "wash"],
    "west virginia": ["wv"],
    "wisconsin": ["wi", "wis"],
    "wyoming": ["wy", "wyo"],
}


def _lower_keys(mapping: dict[str, Any]) -> dict[str, Any]:
    return {k.lower().strip(): v for k, v in mapping.items() if k.strip()}


class MatchVocabulary(BaseModel):
    """Fixed tables consulted by the match scorer."""

    model_config = ConfigDict(frozen=True)

    medical_keywords: dict[str, str] = Field(default_factory=lambda: dict(MEDICAL_KEYWORDS))
    synonyms: dict[str, list[str]] = Field(default_factory=lambda: dict(CONDITION_SYNONYMS))
    states: dict[str, list[str]] = Field(default_factory=lambda: dict(US_STATES))

    @field_validator("medical_keywords")
    @classmethod
    def keywords_lower(cls, v: dict[str, str]) -> dict[str, str]:
        return {k: c.lower().strip() for k, c in _lower_keys(v).items()}

    @field_validator("synonyms", "states")
    @classmethod
    def terms_lower(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        return {
            k: [t.lower().strip() for t in terms if t.strip()]
            for k, terms in _lower_keys(v).items()
        }

    @classmethod
    def from_yaml(cls, path: str | Path, *, extend: bool = True) -> "MatchVocabulary":
        """Load vocabulary tables from YAML.

        With extend=True the file's entries are merged over the built-in
        tables; otherwise each table present in the file replaces its default.
        """
        path = Path(path)
        if not path.exists():
            msg = f"Vocabulary file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        if not extend:
            return cls.model_validate(raw)
        base = cls()
        return cls(
            medical_keywords={**base.medical_keywords, **raw.get("medical_keywords", {})},
            synonyms={**base.synonyms, **raw.get("synonyms", {})},
            states={**base.states, **raw.get("states", {})},
        )


DEFAULT_VOCABULARY = MatchVocabulary()
