## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from typing import Iterable, Iterator
from dataclasses import dataclass, field

from .types import Definition
from .errors import TinyCheckError, TinyUnknownFunction
from .validating import check_module


@dataclass
class Module:
    """Validated mapping from top-level names to their definitions."""
    toplevel: dict[str, Definition] = field(default_factory=dict)

    @classmethod
    def from_definitions(cls, definitions: Iterable[Definition], *, check: bool = True) -> "Module":
        toplevel = {}
        for definition in definitions:
            if definition.name in toplevel:
                raise TinyCheckError(f"Function `{definition.name}` is defined more than once.",
                                     tiny_token=definition.name, tiny_meta=definition.meta, function=definition.name)
            toplevel[definition.name] = definition
        if check:
            check_module(toplevel)
        return cls(toplevel)

    def extended(self, definitions: Iterable[Definition], *, check: bool = True) -> "Module":
        """Create a new module with extra definitions, replacing existing ones of the same name."""
        toplevel = dict(self.toplevel)
        toplevel.update(Module.from_definitions(definitions, check=False).toplevel)
        if check:
            check_module(toplevel)
        return Module(toplevel)

    def get(self, name: str) -> Definition | None:
        return self.toplevel.get(name)

    def lookup(self, name: str) -> Definition:
        if (definition := self.toplevel.get(name)) is None:
            raise TinyUnknownFunction(f"Function `{name}` is not defined.", tiny_token=name)
        return definition

    def arity(self, name: str) -> int:
        return self.lookup(name).arity

    def __contains__(self, name: str) -> bool:
        return name in self.toplevel

    def __iter__(self) -> Iterator[Definition]:
        return iter(self.toplevel.values())

    def __len__(self) -> int:
        return len(self.toplevel)
