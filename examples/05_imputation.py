import numpy as np

from sensible_models import Data, ImputeSettings, add_settings, estimate, models, predict

rng = np.random.default_rng(4)
X = rng.multivariate_normal([0.0, 5.0], [[1.0, 0.8], [0.8, 2.0]], size=300)
est = estimate(Data(matrix=X), models.multivariate_normal())

# The second value of each row is missing: fill it with its most likely value.
holes = Data(matrix=[[1.0, np.nan], [-1.0, np.nan]])
print(predict(holes, est).matrix)

# Re-estimating while imputing: a normal model on data with gaps.
obs = Data(vector=np.r_[rng.normal(10.0, 1.0, size=20), np.nan, np.nan])
base = estimate(Data(vector=[0.0, 1.0]), models.normal())
add_settings(base, ImputeSettings(reestimate=True))
print(predict(obs, base).vector[-2:])
