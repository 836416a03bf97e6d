"""Single entry point selecting a random-effects objective by model name."""

from __future__ import annotations

from hierlik.tmb_counts import tmb_multinom_pois, tmb_pcount
from hierlik.tmb_distance import tmb_distsamp, tmb_gdistremoval
from hierlik.tmb_occupancy import tmb_goccu, tmb_occu

_MODELS = {
    "tmb_occu": tmb_occu,
    "tmb_pcount": tmb_pcount,
    "tmb_multinomPois": tmb_multinom_pois,
    "tmb_distsamp": tmb_distsamp,
    "tmb_gdistremoval": tmb_gdistremoval,
    "tmb_goccu": tmb_goccu,
}


def objective(model, data, parameters):
    """Evaluate the objective of ``model`` on ``data`` and ``parameters``."""
    try:
        func = _MODELS[model]
    except KeyError:
        raise ValueError(f"Unknown model: {model!r}") from None
    return func(data, parameters)