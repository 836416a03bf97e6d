# hierlik

`hierlik` provides negative log-likelihood functions for hierarchical models
of species occurrence and abundance, fitted to repeated survey data. It covers
occupancy, N-mixture (point count), multinomial (removal and double observer),
time-to-detection, multi-species, multi-state, distance sampling and
open-population models. Each likelihood function takes design matrices,
coefficients and the data, and returns a single float. You can pass it
directly to an optimiser such as `scipy.optimize.minimize`.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Building blocks

- `hierlik.utils`
  - `inv_logit`
  - `beta_sub`: slices a parameter group out of the full coefficient vector.
  - `dmultinom`: multinomial log probability.
- `hierlik.distr`: abundance distributions.
  - `Mixture` is an enum with the values `P`, `NB` and `ZIP`.
  - `n_density` and `dzip` evaluate the distributions.
- `hierlik.pifun`: cell probabilities for multinomial designs.
  - `removal_pi`, which takes optional period lengths.
  - `double_pi` and `dep_double_pi`.
  - `pi_fun`: picks one of the above by name. The names are `"removalPiFun"`,
    `"doublePiFun"` and `"depDoublePiFun"`.
- `hierlik.detection`: distance detection.
  - `DetExp` and `DetHaz` are the negative exponential and hazard-rate
    functions.
  - `trap_rule` integrates with the trapezoidal rule over 100 steps.
  - `distprob` gives the detection probability in each distance class. It
    handles the `"uniform"`, `"halfnorm"`, `"exp"` and `"hazard"` key
    functions on `"line"` or `"point"` surveys.
- `hierlik.tranprobs`: population transition matrices.
  - `tp_constant`, `tp_autoreg`, `tp_trend`, `tp_ricker` and `tp_gompertz`.
  - `transition_matrix`: the dispatcher. It takes `"constant"`, `"notrend"`,
    `"autoreg"`, `"trend"`, `"ricker"` or `"gompertz"`.
  - `get_lik_trans`: builds the `LikTrans` index tables that the constant
    model needs.
- `hierlik.hmm`: detection vectors for two-state and four-state hidden Markov
  occupancy models (`single_det_vec`, `det_vecs`). In these models an
  observation of 99 means missing.

## Likelihoods

| Module | Functions |
| --- | --- |
| `hierlik.occupancy` | `nll_occu`, `nll_occu_pen`, `nll_occu_rn` |
| `hierlik.pcount` | `nll_pcount`, `nll_gpcount` |
| `hierlik.multinom` | `nll_multinom_pois` |
| `hierlik.ttd` | `nll_nmix_ttd`, `nll_occu_ttd` |
| `hierlik.occu_multi` | `nll_occu_multi`, `nll_occu_multi_loglik` (per-site log-likelihoods) |
| `hierlik.occu_ms` | `nll_occu_ms`, with the helpers `get_param`, `multinom_logit`, `get_psi`, `get_phi`, `get_sdp`, `get_ph` |
| `hierlik.distsamp` | `nll_distsamp` |
| `hierlik.generalized` | `nll_gdistsamp`, `nll_gdistremoval`, `nll_gmultmix` |
| `hierlik.open_models` | `nll_distsamp_open`, `nll_multmix_open`, `open_rates` |
| `hierlik.pcount_open` | `nll_pcount_open` |

## Random-effects objectives

Three modules hold objectives that take two mappings, `data` and
`parameters`:

- `hierlik.tmb_occupancy`: `tmb_occu` and `tmb_goccu`.
- `hierlik.tmb_counts`: `tmb_pcount`, `tmb_multinom_pois` and
  `lp_site_pcount`.
- `hierlik.tmb_distance`: `tmb_distsamp` and `tmb_gdistremoval`.

Random effects are given as a design matrix `Z_<name>` with effects
`b_<name>`. The grouping variables are `n_group_vars_<name>`, and each has
`n_grouplevels_<name>` levels and a log standard deviation `lsigma_<name>`.
The normal log density of the effects is added to the objective.

`hierlik.tmb_objective.objective(model, data, parameters)` picks an objective
by name. The names are `"tmb_occu"`, `"tmb_pcount"`, `"tmb_multinomPois"`,
`"tmb_distsamp"`, `"tmb_gdistremoval"` and `"tmb_goccu"`. An unknown name
raises `ValueError`.

`hierlik.tmb_common` holds the pieces these objectives share:

- `cloglog` and `add_ranef`.
- `key_halfnorm`, `key_exp` and `key_hazard`.
- `distance_prob`, which takes key-function codes: 0 uniform, 1 half-normal,
  2 exponential, 3 hazard.
- `pifun`, which takes codes: 0 removal, 1 double, 2 dependent double.

## Example

```python
import numpy as np
from scipy.optimize import minimize
from hierlik.occupancy import nll_occu

y = np.array([1, 0, 1, 0, 0, 0])          # 2 sites x 3 visits, site by site
X = np.ones((2, 1))                       # occupancy design
V = np.ones((6, 1))                       # detection design
nd = np.array([0, 1])                     # 1 where a site had no detections
known_occ = np.zeros(2, dtype=bool)
navec = np.zeros(6, dtype=bool)

def objective(theta):
    return nll_occu(y, X, V, theta[:1], theta[1:], nd, known_occ, navec,
                    np.zeros(2), np.zeros(6), "logit")

fit = minimize(objective, np.zeros(2), method="BFGS")
print(fit.x)
```

## What the package does not do

- It only evaluates likelihoods. It does not fit models, compute standard
  errors or build design matrices from covariate tables, and it has no
  command-line interface. Choose an optimiser yourself and assemble the
  inputs in the layouts that each function's docstring describes.
- The random-effects objectives return a value only. They do not integrate
  out the random effects or provide gradients.
- There is no standalone multinomial-logit transform for multi-state
  parameter matrices. The only multinomial-logit helpers are the ones inside
  `hierlik.occu_ms`.