from collections.abc import Iterable
from dataclasses import asdict, fields, is_dataclass
from functools import cache
from typing import Any, TypeVar

T = TypeVar("T")


@cache
def _field_names(cls: type) -> frozenset[str]:
    if not is_dataclass(cls):
        raise TypeError(f"{cls.__name__} deve ser um dataclass")
    return frozenset(f.name for f in fields(cls))


class EntityMixin:
    """Conversão entre as dataclasses de domínio, dicionários e models do ORM."""

    @classmethod
    def from_model(cls: type[T], model: Any) -> T:
        # os campos *_id das entidades batem com os attnames das FKs
        return cls(**{name: getattr(model, name) for name in _field_names(cls)})

    @classmethod
    def from_dict(cls: type[T], data: dict[str, Any]) -> T:
        names = _field_names(cls)
        return cls(**{k: v for k, v in data.items() if k in names})

    def to_dict(self, exclude: Iterable[str] = ()) -> dict[str, Any]:
        data = asdict(self)
        for name in exclude:
            data.pop(name, None)
        return data
