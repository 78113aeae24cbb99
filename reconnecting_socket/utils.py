import json
import random
from typing import Any, Optional


def random_name(rng: Optional[random.Random] = None) -> str:
    """Default socket name: 'rs-' followed by four hex digits."""
    rng = rng or random
    return "rs-%04x" % rng.randrange(0x10000)


def describe_error(err: Optional[BaseException]) -> str:
    if err is None:
        return "no error recorded"
    text = str(err)
    return f"{type(err).__name__}: {text}" if text else type(err).__name__


def pretty(msg: Any) -> str:
    """Return a pretty-printed JSON string for logging/printing."""
    try:
        return json.dumps(msg, ensure_ascii=False, indent=2)
    except (TypeError, ValueError):
        return str(msg)
