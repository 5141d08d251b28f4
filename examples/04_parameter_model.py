import numpy as np

from sensible_models import (
    Data,
    Model,
    ParameterModelSettings,
    add_settings,
    estimate,
    models,
    parameter_model,
    set_parameters,
    show,
)

rng = np.random.default_rng(3)
data = Data(vector=rng.exponential(2.0, size=150))
est = estimate(data, models.normal())

# Bootstrap distribution of all the parameters.
add_settings(est, ParameterModelSettings(index=-1, draws=300))
print(show(parameter_model(data, est)))

# Just the mean.
add_settings(est, ParameterModelSettings(index=0, draws=300))
print(show(parameter_model(data, est)))


# A stochastic model has no data: its parameters are tabulated over repeated runs.
def simulate(data, model):
    walk = np.cumsum(rng.choice([-1.0, 1.0], size=50))
    model.parameters.vector[:] = (walk[-1], walk.max())


walker = set_parameters(Model(name="random walk", vector_base=2, estimate=simulate), 0.0, 0.0)
add_settings(walker, ParameterModelSettings(index=-1, draws=500))
pmf = parameter_model(None, walker)
print("tabulated", pmf.data.n_rows, "runs; mean endpoint", pmf.data.matrix[:, 0].mean())
