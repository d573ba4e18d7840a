from typing import Any

QUOTES = ('"', "'")


def clean_title(title: str) -> str:
    """Trim a title and strip one layer of matching enclosing quotes."""
    cleaned = title.strip()
    for quote in QUOTES:
        if len(cleaned) >= 2 and cleaned.startswith(quote) and cleaned.endswith(quote):
            return cleaned[1:-1]
    return cleaned


def clean_titles(data: Any) -> Any:
    """Recursively clean every string `title` in an API payload."""
    if isinstance(data, list):
        return [clean_titles(item) for item in data]
    if not isinstance(data, dict):
        return data

    cleaned = {}
    for key, value in data.items():
        if key == "title" and isinstance(value, str):
            cleaned[key] = clean_title(value)
        else:
            cleaned[key] = clean_titles(value)
    return cleaned
