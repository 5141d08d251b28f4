"""Per-model extension settings.

Each model carries a :class:`SettingsStore`: an ordered mapping from a group
name to a settings group plus the hooks used to copy and free it. Fallback
algorithms attach the group they need on first use (:func:`settings_for`);
copying a model copies every entry through its copy hook and freeing a model
frees every entry through its free hook.
"""
from __future__ import annotations

import copy as _copy
import logging
from dataclasses import dataclass, field, replace
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterator,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
)

import numpy as np

from .config import new_rng
from .errors import InvalidArgument

__all__ = [
    "OwnedRng",
    "BorrowedRng",
    "rng_handle",
    "SettingsGroup",
    "ParameterModelSettings",
    "CdfSettings",
    "MLESettings",
    "ArmsSettings",
    "ImputeSettings",
    "LSSettings",
    "SettingsEntry",
    "SettingsStore",
    "add_settings",
    "get_settings",
    "settings_for",
]

logger = logging.getLogger(__name__)


# ---- RNG ownership ----------------------------------------------------------


class OwnedRng:
    """An RNG stream owned by its settings group and released with it."""

    def __init__(self, generator: Optional[np.random.Generator] = None):
        self._generator = new_rng() if generator is None else generator

    @property
    def generator(self) -> np.random.Generator:
        if self._generator is None:
            raise InvalidArgument("This RNG stream has been released.")
        return self._generator

    @property
    def released(self) -> bool:
        return self._generator is None

    def release(self) -> None:
        self._generator = None

    def fresh(self) -> "OwnedRng":
        return OwnedRng()

    def __repr__(self) -> str:
        return f"OwnedRng(released={self.released})"


@dataclass(frozen=True)
class BorrowedRng:
    """A caller-supplied RNG stream: used but never released."""

    generator: np.random.Generator

    @property
    def released(self) -> bool:
        return False

    def release(self) -> None:
        return None

    def fresh(self) -> OwnedRng:
        # Copies never share random state with the original.
        return OwnedRng()


RngHandle = Union[OwnedRng, BorrowedRng]


def rng_handle(rng: Any = None) -> RngHandle:
    """Wrap ``rng`` in an ownership handle.

    None allocates an owned stream from the global seed counter, an int seeds
    an owned stream, and a Generator supplied by the caller is borrowed.
    """
    if rng is None:
        return OwnedRng()
    if isinstance(rng, (OwnedRng, BorrowedRng)):
        return rng
    if isinstance(rng, np.random.Generator):
        return BorrowedRng(rng)
    if isinstance(rng, (int, np.integer)):
        return OwnedRng(np.random.default_rng(int(rng)))
    raise InvalidArgument(f"Cannot use {type(rng).__name__} as an RNG.")


# ---- settings groups ----------------------------------------------------------


@dataclass
class SettingsGroup:
    """Base class: a named bundle of configuration for one fallback."""

    name: ClassVar[str] = ""

    def copy(self) -> "SettingsGroup":
        return replace(self)

    def close(self) -> None:
        return None


@dataclass
class ParameterModelSettings(SettingsGroup):
    """Configuration of the parameter-distribution fallback.

    index:
        Position of the parameter of interest in packed order; -1 asks for the
        joint distribution of all parameters.
    draws:
        Bootstrap resamples (with data) or model re-runs (without data).
    base:
        The model whose parameters are being described. Borrowed, not owned.
    """

    name: ClassVar[str] = "parameter_model"

    rng: Any = None
    draws: int = 10_000
    base: Any = field(default=None, repr=False)
    index: int = 0

    def __post_init__(self) -> None:
        self.rng = rng_handle(self.rng)

    def copy(self) -> "ParameterModelSettings":
        return replace(self, rng=self.rng.fresh())

    def close(self) -> None:
        self.rng.release()


@dataclass
class CdfSettings(SettingsGroup):
    """Configuration of the Monte Carlo CDF fallback."""

    name: ClassVar[str] = "cdf"

    cdf_model: Any = field(default=None, repr=False)
    draws: int = 10_000
    rng: Any = None

    def __post_init__(self) -> None:
        self.rng = rng_handle(self.rng)

    def copy(self) -> "CdfSettings":
        from .lifecycle import copy as copy_model

        sub = None if self.cdf_model is None else copy_model(self.cdf_model)
        return replace(self, cdf_model=sub, rng=self.rng.fresh())

    def close(self) -> None:
        from .lifecycle import free

        self.rng.release()
        free(self.cdf_model)
        self.cdf_model = None


@dataclass
class MLESettings(SettingsGroup):
    """Configuration of the maximum-likelihood fallback and numerical derivatives.

    method is any ``scipy.optimize.minimize`` method; the default simplex
    search tolerates objectives that are infinite outside the parameter space.
    delta is the step used for numerical gradients and Hessians.
    """

    name: ClassVar[str] = "mle"

    starting_point: Optional[np.ndarray] = None
    method: str = "Nelder-Mead"
    tolerance: float = 1e-6
    max_iterations: int = 5000
    delta: float = 1e-3
    want_cov: bool = True

    def copy(self) -> "MLESettings":
        sp = None if self.starting_point is None else np.array(self.starting_point, dtype=float)
        return replace(self, starting_point=sp)


@dataclass
class ArmsSettings(SettingsGroup):
    """Configuration and cached state of the adaptive rejection draw fallback."""

    name: ClassVar[str] = "arms"

    xl: float = -1e6
    xr: float = 1e6
    n_init: int = 25
    max_knots: int = 200
    max_tries: int = 1000
    # Cache: the hull for the parameters it was built at, and the chain state.
    hull: Any = field(default=None, repr=False, compare=False)
    fingerprint: Optional[bytes] = field(default=None, repr=False, compare=False)
    xprev: Optional[float] = field(default=None, repr=False, compare=False)
    lfprev: Optional[float] = field(default=None, repr=False, compare=False)

    def copy(self) -> "ArmsSettings":
        return replace(self, hull=None, fingerprint=None, xprev=None, lfprev=None)

    def reset(self) -> None:
        self.hull = None
        self.fingerprint = None
        self.xprev = None
        self.lfprev = None


@dataclass
class ImputeSettings(SettingsGroup):
    """Configuration of the imputation fallback used by predict.

    With ``reestimate`` the model parameters are re-estimated on the filled-in
    data and the missing values imputed again, until the parameters settle.
    """

    name: ClassVar[str] = "impute"

    reestimate: bool = False
    max_iter: int = 50
    tolerance: float = 1e-6


@dataclass
class LSSettings(SettingsGroup):
    """Least-squares options; ``sigma`` is the known residual covariance for GLS."""

    name: ClassVar[str] = "ls"

    sigma: Optional[np.ndarray] = field(default=None, repr=False)
    want_cov: bool = True
    want_expected_value: bool = True

    def copy(self) -> "LSSettings":
        sigma = None if self.sigma is None else np.array(self.sigma, dtype=float)
        return replace(self, sigma=sigma)


# ---- the store ------------------------------------------------------------------


def _default_copy(group: Any) -> Any:
    fn = getattr(group, "copy", None)
    if callable(fn):
        return fn()
    return _copy.deepcopy(group)


def _default_free(group: Any) -> None:
    fn = getattr(group, "close", None)
    if callable(fn):
        fn()


@dataclass
class SettingsEntry:
    group: Any
    copy: Callable[[Any], Any] = _default_copy
    free: Callable[[Any], None] = _default_free


G = TypeVar("G", bound=SettingsGroup)


class SettingsStore:
    """Ordered name -> settings-group mapping with per-entry copy/free hooks."""

    def __init__(self) -> None:
        self._entries: Dict[str, SettingsEntry] = {}

    @staticmethod
    def _key(key: Any) -> str:
        if isinstance(key, str):
            return key
        name = getattr(key, "name", "")
        if not isinstance(name, str) or not name:
            raise InvalidArgument(f"{key!r} does not name a settings group.")
        return name

    def add(
        self,
        group: Any,
        *,
        name: Optional[str] = None,
        copy: Optional[Callable[[Any], Any]] = None,
        free: Optional[Callable[[Any], None]] = None,
    ) -> Any:
        """Attach ``group``, replacing (and freeing) any group of the same name."""
        key = name if name is not None else self._key(group)
        if not key:
            raise InvalidArgument("Settings groups need a non-empty name.")
        old = self._entries.pop(key, None)
        if old is not None:
            old.free(old.group)
        self._entries[key] = SettingsEntry(
            group=group,
            copy=copy or _default_copy,
            free=free or _default_free,
        )
        return group

    def get(self, key: Any) -> Optional[Any]:
        entry = self._entries.get(self._key(key))
        return None if entry is None else entry.group

    def remove(self, key: Any) -> None:
        entry = self._entries.pop(self._key(key), None)
        if entry is not None:
            entry.free(entry.group)

    def copy(self) -> "SettingsStore":
        out = SettingsStore()
        for key, entry in self._entries.items():
            out._entries[key] = SettingsEntry(
                group=entry.copy(entry.group), copy=entry.copy, free=entry.free
            )
        return out

    def close(self) -> None:
        """Free every entry and empty the store."""
        entries, self._entries = self._entries, {}
        for entry in entries.values():
            entry.free(entry.group)

    def items(self) -> Iterator[Tuple[str, Any]]:
        for key, entry in self._entries.items():
            yield key, entry.group

    def __contains__(self, key: Any) -> bool:
        return self._key(key) in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"SettingsStore({list(self._entries)})"


# ---- model helpers ----------------------------------------------------------------


def add_settings(model: Any, group: G, **hooks: Any) -> G:
    """Attach a settings group to ``model`` and return the group."""
    if model is None:
        raise InvalidArgument("model is a NULL model.")
    return model.settings.add(group, **hooks)


def get_settings(model: Any, kind: Type[G]) -> Optional[G]:
    """Return the model's group of the given kind, or None."""
    return model.settings.get(kind)


def settings_for(model: Any, kind: Type[G], **defaults: Any) -> G:
    """Return the model's group of the given kind, attaching a default one if absent."""
    group = model.settings.get(kind)
    if group is None:
        group = model.settings.add(kind(**defaults))
        logger.debug("attached %s settings to model %r", kind.name, getattr(model, "name", ""))
    return group
