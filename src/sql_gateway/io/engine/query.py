"""Compiled query record shared by the builder, the engine and the results."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Union

ParamKey = Union[int, str]
Params = Union[Mapping[ParamKey, Any], Sequence[Any], None]


def normalize_params(params: Params) -> Dict[ParamKey, Any]:
    """
    Turn caller supplied parameters into an ordered mapping.

    Sequences become 0-based positional keys; the engine rebinds them 1-based.

    Examples:
        >>> normalize_params(["a", "b"])
        {0: 'a', 1: 'b'}
        >>> normalize_params({"id": 5})
        {'id': 5}
    """
    if params is None:
        return {}
    if isinstance(params, Mapping):
        return dict(params)
    if isinstance(params, (str, bytes)):
        raise TypeError("Query parameters must be a mapping or a sequence, not a string")
    return dict(enumerate(params))


@dataclass
class Query:
    """One SQL statement with its bound parameters and execution metadata.

    ``executed`` marks that the engine attempted the statement, not that it
    succeeded; ``error`` holds the failure message when it did not.
    """

    text: str
    params: Dict[ParamKey, Any] = field(default_factory=dict)
    executed: bool = False
    row_count: int = 0
    error: Optional[str] = None

    def __post_init__(self) -> None:
        self.params = normalize_params(self.params)

    @property
    def failed(self) -> bool:
        return self.error is not None
