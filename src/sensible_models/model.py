from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from .data import Data
from .settings import SettingsStore

__all__ = [
    "DERIVE_FROM_DATA",
    "SIZE_FIELDS",
    "OPERATION_SLOTS",
    "Capability",
    "Resolution",
    "Model",
    "resolve_capabilities",
]

# Size-policy sentinel: take the size from the data's matrix column count.
DERIVE_FROM_DATA = -1

SIZE_FIELDS = ("vector_base", "matrix1_base", "matrix2_base", "output_size")

OPERATION_SLOTS = (
    "estimate",
    "p",
    "log_likelihood",
    "score",
    "draw",
    "predict",
    "cdf",
    "parameter_model",
    "prep",
    "show",
    "copy_more",
)


class Capability(str, Enum):
    ESTIMATE = "estimate"
    P = "p"
    LOG_LIKELIHOOD = "log_likelihood"
    SCORE = "score"
    DRAW = "draw"
    PREDICT = "predict"
    CDF = "cdf"
    PARAMETER_MODEL = "parameter_model"


class Resolution(str, Enum):
    """How the dispatcher serves one capability of one model."""

    NATIVE = "native"
    FALLBACK = "fallback"
    # Native first; a None result defers to the fallback.
    HYBRID = "hybrid"
    UNSUPPORTED = "unsupported"


Operation = Optional[Callable[..., Any]]


@dataclass(eq=False)
class Model:
    """A statistical model: optional operations, a size policy and owned state.

    Every operation slot is optional. The dispatcher functions in
    :mod:`sensible_models.dispatch` call the slot when it is present and a
    numerical fallback otherwise.

    Slot signatures::

        estimate(data, model) -> Model | None     # None: `model` was filled in place
        p(data, model) -> float
        log_likelihood(data, model) -> float
        score(data, model) -> array               # d log L / d packed parameters
        draw(rng, model) -> array                 # one draw, length output_size
        predict(data, model) -> Data | None       # None: defer to the fallback
        cdf(data, model) -> float
        parameter_model(data, model) -> Model
        prep(data, model) -> None
        show(model) -> str
        copy_more(more) -> more

    Size fields are non-negative ints, or DERIVE_FROM_DATA to take the column
    count of the data's matrix when the model is prepared.
    """

    name: str = ""
    vector_base: int = 0
    matrix1_base: int = 0
    matrix2_base: int = 0
    output_size: int = 0

    estimate: Operation = field(default=None, repr=False)
    p: Operation = field(default=None, repr=False)
    log_likelihood: Operation = field(default=None, repr=False)
    score: Operation = field(default=None, repr=False)
    draw: Operation = field(default=None, repr=False)
    predict: Operation = field(default=None, repr=False)
    cdf: Operation = field(default=None, repr=False)
    parameter_model: Operation = field(default=None, repr=False)
    prep: Operation = field(default=None, repr=False)
    show: Operation = field(default=None, repr=False)
    copy_more: Operation = field(default=None, repr=False)

    parameters: Optional[Data] = None
    info: Optional[Data] = field(default=None, repr=False)
    # Back-reference to the data the model was last prepared with; not owned.
    data: Optional[Data] = field(default=None, repr=False)
    more: Any = field(default=None, repr=False)
    settings: SettingsStore = field(default_factory=SettingsStore, repr=False)

    _dispatch: Optional[Mapping[Capability, Resolution]] = field(
        default=None, init=False, repr=False
    )

    # ---- builders (return a new, unprepared model) ----
    def with_ops(self, **ops: Operation) -> "Model":
        """Return a new Model with the given operation slots set (or cleared with None)."""
        for k in ops:
            if k not in OPERATION_SLOTS:
                raise KeyError(k)
        return replace(self, **self._owned_copies(), **ops)

    def with_sizes(self, **sizes: int) -> "Model":
        """Return a new Model with a different size policy."""
        for k, v in sizes.items():
            if k not in SIZE_FIELDS:
                raise KeyError(k)
            if int(v) < DERIVE_FROM_DATA:
                raise ValueError(f"{k} must be >= 0 or DERIVE_FROM_DATA, got {v}.")
        return replace(
            self, **self._owned_copies(), **{k: int(v) for k, v in sizes.items()}
        )

    def _owned_copies(self) -> dict:
        return {
            "parameters": None if self.parameters is None else self.parameters.copy(),
            "info": None if self.info is None else self.info.copy(),
            "settings": self.settings.copy(),
        }

    # ---- capabilities ----
    def capabilities(self) -> Mapping[Capability, Resolution]:
        """The dispatch table: cached at preparation, resolved on demand otherwise."""
        if self._dispatch is not None:
            return self._dispatch
        return resolve_capabilities(self)

    def has_native(self, capability: Capability) -> bool:
        return getattr(self, Capability(capability).value) is not None

    @property
    def derives_size_from_data(self) -> bool:
        return any(getattr(self, f) == DERIVE_FROM_DATA for f in SIZE_FIELDS)


def resolve_capabilities(model: Model) -> Mapping[Capability, Resolution]:
    """Decide, per capability, whether the native slot or a fallback serves it."""
    native = Resolution.NATIVE
    fallback = Resolution.FALLBACK
    unsupported = Resolution.UNSUPPORTED

    has_density = model.p is not None or model.log_likelihood is not None
    # The draw fallback samples scalars only.
    samplable = has_density and model.output_size <= 1

    table = {
        Capability.ESTIMATE: native
        if model.estimate is not None
        else (fallback if has_density else unsupported),
        Capability.P: native
        if model.p is not None
        else (fallback if model.log_likelihood is not None else unsupported),
        Capability.LOG_LIKELIHOOD: native
        if model.log_likelihood is not None
        else (fallback if model.p is not None else unsupported),
        Capability.SCORE: native
        if model.score is not None
        else (fallback if has_density else unsupported),
        Capability.DRAW: native
        if model.draw is not None
        else (fallback if samplable else unsupported),
        Capability.PREDICT: Resolution.HYBRID if model.predict is not None else fallback,
        Capability.CDF: native
        if model.cdf is not None
        else (fallback if (model.draw is not None or samplable) else unsupported),
        Capability.PARAMETER_MODEL: native
        if model.parameter_model is not None
        else fallback,
    }
    return MappingProxyType(table)
