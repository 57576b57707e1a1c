# src/nnloss/registry.py
from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Mapping, Union

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class Registry:
    def __init__(self, name: str):
        self._name = name
        self._obj_map: Dict[str, Any] = {}

    def register(self, name: str) -> Callable:
        """ As decorator to register an object with a given name
        """
        def decorator(obj: Any) -> Any:
            if name in self._obj_map:
                raise KeyError(f"{name} already registered in {self._name}")
            self._obj_map[name] = obj
            return obj
        return decorator

    def get(self, name: str) -> Any:
        if name not in self._obj_map:
            raise ConfigurationError(
                f"{name} is not registered in {self._name}. "
                f"Available keys: {list(self._obj_map.keys())}"
            )
        return self._obj_map[name]

    def create(self, name: str, *args, **kwargs) -> Any:
        cls = self.get(name)
        return cls(*args, **kwargs)

    def names(self):
        return sorted(self._obj_map)

    def __contains__(self, name: str) -> bool:
        return name in self._obj_map


LOSS_REGISTRY = Registry("loss")


def build_loss(cfg: Union[str, Mapping[str, Any]]):
    """
    Build a loss from a name or a config mapping, e.g.

        build_loss("mse")
        build_loss({"name": "huber", "params": {"delta": 0.5}})
        build_loss({"name": "reconstruction",
                    "params": {"latent_size": 2, "inner": {"name": "sigmoid_cross_entropy"}}})
    """
    if isinstance(cfg, str):
        name, params = cfg, {}
    elif isinstance(cfg, Mapping):
        if "name" not in cfg:
            raise ConfigurationError(f"loss config is missing 'name': {dict(cfg)}")
        name = cfg["name"]
        params = dict(cfg.get("params") or {})
    else:
        raise ConfigurationError(f"loss config must be a name or a mapping, got {type(cfg).__name__}")

    # nested loss configs (reconstruction's inner loss)
    for key, value in list(params.items()):
        if isinstance(value, Mapping) and "name" in value:
            params[key] = build_loss(value)

    logger.debug("building loss %s with params %s", name, params)
    try:
        return LOSS_REGISTRY.create(name, **params)
    except TypeError as e:
        raise ConfigurationError(f"invalid params for loss {name!r}: {e}") from e
