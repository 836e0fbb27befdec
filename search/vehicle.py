"""Vehicle model mentions in queries and designations."""

from search.normalizer import contains_word, normalize_text


def _surface_forms(model: str) -> set[str]:
    base = normalize_text(model)
    return {base, base.replace("-", ""), base.replace("-", " "), base.replace(" ", "")}


def matches_model(text: str, model: str) -> bool:
    """True when text names the model; "S-PRESSO" and "SPRESSO" are the same model."""
    normalized = normalize_text(text)
    return any(contains_word(normalized, form) for form in _surface_forms(model) if form)


def find_model(text: str, models: tuple[str, ...]) -> str | None:
    """First supported model named in text, or None."""
    for model in models:
        if matches_model(text, model):
            return model
    return None


def names_other_model(designation: str, model: str, models: tuple[str, ...]) -> bool:
    """True when a designation names a supported model and not the requested one."""
    if matches_model(designation, model):
        return False
    return find_model(designation, models) is not None
