from typing import Any, Dict, Iterable, List, Union, cast

from ..core import Parameters

# State dictionary maps parameter IDs to their states
OptState = Dict[int, Dict[str, Any]]
OptDefaults = Dict[str, Any]
StateDict = Dict[str, Union[OptState, OptDefaults]]


class Optimizer:
    """
    Base class for all optimizers.

    An optimizer updates parameter stores from the gradients a backward pass
    accumulated into them, typically ``graph.parameters()``.

    Args:
        params: An iterable of parameter stores to optimize
        defaults: Dictionary of default hyperparameter values for the optimizer
    """

    def __init__(self, params: Iterable[Parameters], defaults: OptDefaults) -> None:
        self.defaults = defaults
        self._params: List[Parameters] = []
        self.state: OptState = {}
        for p in params:
            self.add_param(p)

    def add_param(self, param: Parameters) -> None:
        """Adds a parameter store, ignoring stores already being optimized."""
        if not isinstance(param, Parameters):
            raise TypeError(f"Expected Parameters, got {type(param).__name__}")
        if id(param) not in self.state:
            self.state[id(param)] = {}
            self._params.append(param)

    def zero_grad(self) -> None:
        """
        Clears the gradients of all optimized parameters.

        Parameter stores accumulate across backward passes, so this should be
        called after each step.
        """
        for p in self._params:
            p.zero_grad()

    def step(self) -> None:
        """
        Performs a single optimization step.

        Raises:
            NotImplementedError: If not implemented by subclass
        """
        raise NotImplementedError

    def state_dict(self) -> StateDict:
        """
        Returns the state of the optimizer as a dictionary.

        The state dictionary has two main components:
        - 'state': Maps parameter IDs to their optimization state
        - 'defaults': Contains the default hyperparameters
        """
        return {"state": self.state, "defaults": self.defaults}

    def load_state_dict(self, state_dict: StateDict) -> None:
        self.state = cast(OptState, state_dict["state"])
        self.defaults = cast(OptDefaults, state_dict["defaults"])
