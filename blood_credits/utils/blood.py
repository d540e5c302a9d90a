from blood_credits.models.credits import BloodType

ALLOWED_BLOOD_TYPES: dict[str, BloodType] = {
    # Canonical spelling → itself (for fast check)
    **{bt.value.lower(): bt for bt in BloodType},
    "a pos": BloodType.A_POS,
    "a neg": BloodType.A_NEG,
    "b pos": BloodType.B_POS,
    "b neg": BloodType.B_NEG,
    "ab pos": BloodType.AB_POS,
    "ab neg": BloodType.AB_NEG,
    "o pos": BloodType.O_POS,
    "o neg": BloodType.O_NEG,
    # zero instead of letter O is a frequent typo
    "0+": BloodType.O_POS,
    "0-": BloodType.O_NEG,
}


def normalize_blood_type(raw_value: str | None) -> BloodType | None:
    """Return canonical blood type if *raw_value* matches one of allowed variations.

    Matching is case-insensitive, accepts "positive"/"negative" spelled out,
    the unicode minus sign and extra spaces.
    Returns ``None`` if the value is not recognized.
    """
    if not raw_value:
        return None

    cleaned = raw_value.strip().lower().replace("−", "-")
    cleaned = cleaned.replace("positive", "pos").replace("negative", "neg")
    cleaned = " ".join(cleaned.split())  # collapse whitespace

    if cleaned in ALLOWED_BLOOD_TYPES:
        return ALLOWED_BLOOD_TYPES[cleaned]

    # "AB -" / "o +" → "ab-" / "o+"
    compact = cleaned.replace(" ", "")
    return ALLOWED_BLOOD_TYPES.get(compact)
