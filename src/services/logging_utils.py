from typing import Any, Callable, Mapping, Optional


def print_with_prefix(
    prefix: str,
    message: Optional[str],
    enabled: bool = True,
) -> None:
    if not enabled:
        return
    text = "" if message is None else str(message)
    lines = text.splitlines() or [""]
    for line in lines:
        if line:
            print(f"{prefix} {line}")
        else:
            print(prefix)


def log_section(
    log_fn: Callable[[str], None],
    title: str,
    width: int = 70,
    char: str = "=",
) -> None:
    line = char * width
    log_fn(line)
    log_fn(title)
    log_fn(line)


def log_fields(
    log_fn: Callable[[str], None],
    fields: Mapping[str, Any],
    indent: str = "   ",
) -> None:
    """Logga coppie chiave/valore allineate (una per riga)."""
    if not fields:
        return
    width = max(len(str(k)) for k in fields)
    for key, value in fields.items():
        log_fn(f"{indent}{str(key) + ':':<{width + 1}} {value}")
