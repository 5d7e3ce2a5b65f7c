def fix_empty_and_trim(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if value == "":
        return None
    return value


def normalize_url(url: str | None) -> str | None:
    """Trim ``url`` and make it end with exactly one slash.

    Blank input collapses to ``None``.
    """
    url = fix_empty_and_trim(url)
    if url is None:
        return None
    return url.rstrip("/") + "/"


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{int(seconds * 1000)} ms"
    if seconds < 60:
        return f"{seconds:.1f} sec"
    minutes, seconds = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes} min {seconds} sec"
    hours, minutes = divmod(minutes, 60)
    return f"{hours} hr {minutes} min"
