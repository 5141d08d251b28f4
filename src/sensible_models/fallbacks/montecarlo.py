from __future__ import annotations

from typing import Any

import numpy as np

from ..data import Data
from ..errors import InvalidArgument
from ..settings import CdfSettings, settings_for


def mc_cdf(data: Data, model: Any) -> float:
    """Share of model draws that are componentwise at or below row 0 of ``data``.

    Uses the model's :class:`CdfSettings` (attached on first use): its RNG
    stream and number of draws.
    """
    from ..dispatch import draw

    if data is None:
        raise InvalidArgument("The CDF needs a data set holding the point to evaluate.")
    settings = settings_for(model, CdfSettings)
    n = int(settings.draws)
    if n < 1:
        raise InvalidArgument(f"The CDF needs at least one draw, got {n}.")

    ref = data.row(0)
    rng = settings.rng.generator
    out = np.empty(ref.shape[0], dtype=float)
    tally = 0
    for _ in range(n):
        draw(rng, model, out=out)
        if np.all(out <= ref):
            tally += 1
    return tally / float(n)
