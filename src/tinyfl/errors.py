## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import lark


class TinyError(Exception):
    def __init__(self, message: str = "", *, tiny_token=None, tiny_meta=None):
        """Base class for all tinyfl-raised errors."""
        super().__init__(message)
        self.tiny_token: object = tiny_token
        self.tiny_meta: dict = tiny_meta

class TinyParseError(TinyError):
    def __init__(self, message, *, filename=None, line=None, column=None, token=None):
        super().__init__(message, tiny_token=token)
        self.filename = filename
        self.line = line
        self.column = column
        self.token = token

class TinyIncompleteParse(TinyParseError, lark.exceptions.ParseError):
    def __init__(self, message, *, filename=None, line=None, column=None, token=None):
        super().__init__(message, filename=filename, line=line, column=column, token=token)

class TinyCheckError(TinyError, ValueError):
    """Structural problems in a module, found before evaluation begins."""
    def __init__(self, message: str = "", *, tiny_token=None, tiny_meta=None, function=None):
        super().__init__(message, tiny_token=tiny_token, tiny_meta=tiny_meta)
        self.function = function


class TinyFault(TinyError):
    """Fatal run-time condition; evaluation is never resumed after one is raised."""
    kind = None

    def __init__(self, message: str = "", *, tiny_token=None, tiny_meta=None):
        super().__init__(message, tiny_token=tiny_token, tiny_meta=tiny_meta)
        self.tiny_function: str | None = None
        self.tiny_depth: int | None = None

class TinyResourceError(TinyFault, RuntimeError):
    """The call stack or the closure arena would exceed its configured capacity."""
    kind = "resource"

    def __init__(self, message: str = "", *, resource=None, capacity=None):
        super().__init__(message, tiny_token=resource)
        self.resource: str = resource
        self.capacity: int = capacity

class TinyUnboundError(TinyFault, NameError):
    kind = "unbound"

class TinyUnknownFunction(TinyFault, NameError):
    kind = "unknown-function"

class TinyTagError(TinyFault, TypeError):
    kind = "tag"

class TinyArityError(TinyFault, TypeError):
    kind = "arity"

class TinyMatchError(TinyFault, LookupError):
    kind = "match"

class TinyArithmeticError(TinyFault, ArithmeticError):
    kind = "arithmetic"
