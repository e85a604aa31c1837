"""flowsim: offline simulation of multi-step flow runs."""

from .errors import ConfigError, FlowSimError, MalformedStateError, NotFoundError
from .persistence import State, get_store, load_state, save_atomic, seed_default
from .session import SimulationSession
from .simulation import Simulator

__version__ = "0.1.0"
__all__ = [
    "ConfigError",
    "FlowSimError",
    "MalformedStateError",
    "NotFoundError",
    "SimulationSession",
    "Simulator",
    "State",
    "get_store",
    "load_state",
    "save_atomic",
    "seed_default",
]
