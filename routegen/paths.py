"""
Path template helpers.

Routes are declared with ":name" segments. Starlette and OpenAPI both want
"{name}", so the same substitution is applied at both boundaries and nowhere
else.
"""

import re
from typing import List

PATH_PARAM_PATTERN = re.compile(r":([^/]+)")


def brace_path(path: str) -> str:
    """Turn "/:id/comments" into "/{id}/comments". No other character changes."""
    return PATH_PARAM_PATTERN.sub(r"{\1}", path)


def path_params(path: str) -> List[str]:
    """Names of the ":name" segments, in order of appearance."""
    return PATH_PARAM_PATTERN.findall(path)


def normalize_route_path(path: str) -> str:
    # A bare "/" would leave a trailing slash after the controller prefix
    return "" if path == "/" else path
