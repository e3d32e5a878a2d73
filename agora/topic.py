"""Keyword-based seriousness detection. Only softens tone; never blocks a question."""

# Lower-case substrings. Health, legal/financial and crisis vocabulary in
# English, Turkish, Spanish, French and German.
SERIOUS_KEYWORDS: tuple[str, ...] = (
    # health
    "cancer", "tumor", "diagnos", "symptom", "disease", "illness", "medication",
    "medicine", "doctor", "hospital", "surgery", "pregnan", "depress", "anxiety",
    "kanser", "hastalık", "hastane", "doktor", "ilaç", "tedavi", "ameliyat", "hamile",
    "enfermedad", "médico", "embarazo", "medicamento",
    "maladie", "médecin", "hôpital", "grossesse", "médicament",
    "krankheit", "arzt", "krankenhaus", "schwanger", "medikament",
    # legal / financial
    "lawsuit", "lawyer", "attorney", "in court", "divorce", "custody", "arrest",
    "bankrupt", "debt", "mortgage", "foreclos", "taxes", "tax return", "investment", "loan",
    "avukat", "mahkeme", "boşanma", "dava", "borç", "iflas", "vergi", "kredi",
    "abogado", "demanda", "divorcio", "deuda", "impuesto", "préstamo",
    "avocat", "tribunal", "dette", "impôt", "faillite",
    "anwalt", "gericht", "scheidung", "schulden", "steuer", "insolvenz",
    # crisis
    "suicide", "suicidal", "self-harm", "kill myself", "abuse", "violence",
    "emergency", "overdose", "grief", "death",
    "intihar", "şiddet", "istismar", "acil durum", "ölüm",
    "suicidio", "violencia", "emergencia", "muerte",
    "urgence", "décès",
    "selbstmord", "gewalt", "notfall", "todesfall",
)


def is_serious_topic(text: str) -> bool:
    """Return True if any serious keyword appears in text (case-insensitive)."""
    lowered = text.casefold()
    return any(keyword in lowered for keyword in SERIOUS_KEYWORDS)
