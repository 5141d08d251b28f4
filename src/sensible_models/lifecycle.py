"""Allocate, size, copy and release models."""
from __future__ import annotations

import copy as _copy
from dataclasses import replace
from typing import Optional

import numpy as np

from .data import Data
from .errors import InvalidArgument
from .model import DERIVE_FROM_DATA, SIZE_FIELDS, Model, resolve_capabilities

__all__ = ["clear", "free", "copy", "prepare", "set_parameters"]


def clear(data: Optional[Data], model: Model) -> Model:
    """Size the model and give it fresh, zero-filled parameters and an empty info set.

    Size fields set to DERIVE_FROM_DATA take the column count of
    ``data.matrix``. ``data`` is recorded as the model's back-reference; it is
    not copied and stays owned by the caller.
    """
    if model is None:
        raise InvalidArgument("model is a NULL model.")
    sizes = {}
    for f in SIZE_FIELDS:
        v = int(getattr(model, f))
        if v == DERIVE_FROM_DATA:
            if data is None or data.matrix is None:
                raise InvalidArgument(
                    f"Model {model.name!r} takes {f} from the data, but "
                    + ("no data was given." if data is None else "the data has no matrix.")
                )
            v = data.n_cols
        elif v < 0:
            raise InvalidArgument(f"{f} must be >= 0 or DERIVE_FROM_DATA, got {v}.")
        sizes[f] = v
    for f, v in sizes.items():
        setattr(model, f, v)

    model.parameters = Data.alloc(
        sizes["vector_base"], sizes["matrix1_base"], sizes["matrix2_base"]
    )
    model.info = Data()
    model.info.names.title = "Info"
    model.data = data
    model._dispatch = resolve_capabilities(model)
    return model


def free(model: Optional[Model]) -> None:
    """Release what the model owns: its parameters and its settings groups.

    ``info`` is left in place for the caller to inspect, and neither ``data``
    (owned by the caller) nor ``more`` is touched. Freeing None is a no-op.
    """
    if model is None:
        return
    model.parameters = None
    model.settings.close()
    model._dispatch = None


def copy(model: Model) -> Model:
    """Return an independent copy of ``model``.

    Parameters, info and extension state are deep-copied; every settings group
    goes through its copy hook, so RNG streams in the copy are fresh.
    """
    if model is None:
        raise InvalidArgument("model is a NULL model.")
    out = replace(model, settings=model.settings.copy())
    if model.more is not None:
        out.more = model.copy_more(model.more) if model.copy_more else _copy.deepcopy(model.more)
    out.parameters = None if model.parameters is None else model.parameters.copy()
    out.info = None if model.info is None else model.info.copy()
    out._dispatch = model._dispatch
    return out


def prepare(data: Optional[Data], model: Model) -> Model:
    """Run the model's own ``prep`` if it has one, else :func:`clear`."""
    if model is None:
        raise InvalidArgument("model is a NULL model.")
    if model.prep is not None:
        model.prep(data, model)
    else:
        clear(data, model)
    model._dispatch = resolve_capabilities(model)
    return model


def set_parameters(model: Model, *values: float) -> Model:
    """Return a prepared copy of a fixed-size model with the given parameters.

    Values fill the parameters in packed order (vector first, then matrix rows).

    >>> from sensible_models import models
    >>> std_normal = set_parameters(models.normal(), 0.0, 1.0)
    """
    if model is None:
        raise InvalidArgument("model is a NULL model.")
    if model.derives_size_from_data:
        raise InvalidArgument(
            "set_parameters only works with models whose number of parameters does not "
            "depend on the data. Use copy(), prepare(data, ...) and fill the parameters instead."
        )
    out = copy(model)
    prepare(None, out)
    vals = np.asarray(values, dtype=float).reshape(-1)
    if out.parameters is None or vals.shape[0] != out.parameters.packed_size:
        n = 0 if out.parameters is None else out.parameters.packed_size
        raise InvalidArgument(
            f"Model {model.name!r} has {n} parameters; got {vals.shape[0]} values."
        )
    out.parameters.fill(vals)
    return out
