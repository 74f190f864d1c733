"""Tool output adapters."""

from ..exceptions import AdapterError, ErrorCode
from .base import AdapterResult, ToolOutputAdapter
from .json_findings import JsonFindingsAdapter
from .sarif import SarifAdapter

_ADAPTERS: dict[str, type[ToolOutputAdapter]] = {
    "sarif": SarifAdapter,
    "json": JsonFindingsAdapter,
}


def get_adapter(name: str) -> ToolOutputAdapter:
    """Get an adapter instance by name.

    Args:
        name: One of "sarif", "json"

    Raises:
        AdapterError: If name is not recognized
    """
    cls = _ADAPTERS.get(name.lower())
    if cls is None:
        raise AdapterError(
            name,
            f"unknown format; choose from: {', '.join(sorted(_ADAPTERS))}",
            code=ErrorCode.FL201,
        )
    return cls()


def register_adapter(adapter_cls: type[ToolOutputAdapter]) -> None:
    """Make ``adapter_cls`` available under its ``name``."""
    if not adapter_cls.name:
        raise ValueError("adapter class must define a name")
    _ADAPTERS[adapter_cls.name.lower()] = adapter_cls


def available_adapters() -> list[str]:
    return sorted(_ADAPTERS)


__all__ = [
    "AdapterResult",
    "JsonFindingsAdapter",
    "SarifAdapter",
    "ToolOutputAdapter",
    "available_adapters",
    "get_adapter",
    "register_adapter",
]
