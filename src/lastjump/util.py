""" Utility methods broadly applicable across the codebase. """

import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

def fullname(o:Any) -> str:
    # from https://stackoverflow.com/a/2020083/553580
    # Python makes no guarantees as to whether the __module__ special
    # attribute is defined, so we take a more circumspect approach.

    if isinstance(o, type):
        klass = o
    else:
        klass = o.__class__

    module = klass.__module__
    if module is None or module == str.__class__.__module__:
        return klass.__qualname__  # Avoid reporting __builtin__
    else:
        return module + '.' + klass.__qualname__

def clip(x:float, lb:Optional[float], ub:Optional[float]) -> float:
    """ clamps x to [lb, ub], a bound of None is open """
    if lb is not None and x < lb:
        return lb
    if ub is not None and x > ub:
        return ub
    return x

def as_list(x:Any) -> list[Any]:
    """ content often allows a single value or a list of values """
    if x is None:
        return []
    elif isinstance(x, (list, tuple)):
        return list(x)
    else:
        return [x]

def to_number(x:Any, default:float=0.) -> float:
    """ numeric coercion that treats anything unparseable as default """
    if isinstance(x, bool):
        return float(x)
    if isinstance(x, (int, float)):
        return x
    if isinstance(x, str):
        try:
            return float(x.strip())
        except ValueError:
            return default
    return default

RE_CAMEL_TO_SNAKE_PHASE_1 = re.compile(r'(.)([A-Z][a-z]+)')
RE_CAMEL_TO_SNAKE_PHASE_2 = re.compile(r'([a-z0-9])([A-Z])')
def camel_to_snake(name: str) -> str:
    name = RE_CAMEL_TO_SNAKE_PHASE_1.sub(r'\1_\2', name)
    return RE_CAMEL_TO_SNAKE_PHASE_2.sub(r'\1_\2', name).lower()
