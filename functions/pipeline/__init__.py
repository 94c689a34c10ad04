# Fetch -> parse -> validate -> render pipeline shared by every badge service
from .parsers import WireFormat
from .render import BadgeFields
from .service import Example, Redirector, Route, Service, invoke_handler

__all__ = [
    "WireFormat",
    "BadgeFields",
    "Example",
    "Redirector",
    "Route",
    "Service",
    "invoke_handler",
]
