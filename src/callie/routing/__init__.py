"""Routing — ordered regex matching with groups.

Public API::

    from callie.routing import Router, RouteEntry, RouteMatch

    router = Router()
    router.get("/employees/:id", show_employee)
    match = router.match("GET", "/employees/7")
"""

from callie.routing.route import RouteEntry, RouteMatch
from callie.routing.router import Router, compile_path, normalize_path

__all__ = [
    "RouteEntry",
    "RouteMatch",
    "Router",
    "compile_path",
    "normalize_path",
]
