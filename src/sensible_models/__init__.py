"""sensible_models public API."""
import logging

from . import models
from .config import new_rng, options
from .data import COVARIANCE_PAGE, Data, Names
from .dispatch import (
    cdf,
    draw,
    estimate,
    log_likelihood,
    p,
    parameter_model,
    predict,
    score,
    show,
)
from .errors import (
    ConvergenceWarning,
    InvalidArgument,
    ModelError,
    NumericalFailure,
    UnsupportedOperation,
    UnsupportedOperationWarning,
)
from .lifecycle import clear, copy, free, prepare, set_parameters
from .model import DERIVE_FROM_DATA, Capability, Model, Resolution, resolve_capabilities
from .settings import (
    ArmsSettings,
    CdfSettings,
    ImputeSettings,
    LSSettings,
    MLESettings,
    ParameterModelSettings,
    SettingsStore,
    add_settings,
    get_settings,
    settings_for,
)
from .ttests import paired_t_test, parameter_t_tests, t_test
from .uncertainty import parameter_uncertainties

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "models",
    "options",
    "new_rng",
    "COVARIANCE_PAGE",
    "Data",
    "Names",
    "Model",
    "Capability",
    "Resolution",
    "DERIVE_FROM_DATA",
    "resolve_capabilities",
    "clear",
    "copy",
    "free",
    "prepare",
    "set_parameters",
    "estimate",
    "p",
    "log_likelihood",
    "score",
    "draw",
    "predict",
    "cdf",
    "parameter_model",
    "show",
    "SettingsStore",
    "ParameterModelSettings",
    "CdfSettings",
    "MLESettings",
    "ArmsSettings",
    "ImputeSettings",
    "LSSettings",
    "add_settings",
    "get_settings",
    "settings_for",
    "t_test",
    "paired_t_test",
    "parameter_t_tests",
    "parameter_uncertainties",
    "ModelError",
    "InvalidArgument",
    "UnsupportedOperation",
    "NumericalFailure",
    "UnsupportedOperationWarning",
    "ConvergenceWarning",
]
