import re

_SYMBOL_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,16}$")


def normalize_symbol(symbol: str) -> str:
    cleaned = symbol.strip().upper()
    if not cleaned or not _SYMBOL_PATTERN.match(cleaned):
        raise ValueError("invalid symbol")
    return cleaned


def parse_symbol_list(raw: str) -> list[str]:
    """Split a comma separated list into distinct normalized symbols, keeping order."""
    symbols: list[str] = []
    for part in raw.split(","):
        if not part.strip():
            continue
        symbol = normalize_symbol(part)
        if symbol not in symbols:
            symbols.append(symbol)
    if not symbols:
        raise ValueError("no symbols")
    return symbols
