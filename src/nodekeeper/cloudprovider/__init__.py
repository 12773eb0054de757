import importlib

from .base import CloudProvider


def load_cloud_provider(path: str) -> CloudProvider:
    """
    Instantiates a cloud provider from a 'package.module:ClassName' path.

    Raises:
        ValueError: If the path is malformed or does not name a CloudProvider.
    """
    module_name, _, class_name = path.partition(":")
    if not module_name or not class_name:
        raise ValueError(f"Invalid cloud provider path '{path}'. Use 'package.module:ClassName'.")
    provider_cls = getattr(importlib.import_module(module_name), class_name)
    if not (isinstance(provider_cls, type) and issubclass(provider_cls, CloudProvider)):
        raise ValueError(f"'{path}' is not a CloudProvider.")
    return provider_cls()


__all__ = ["CloudProvider", "load_cloud_provider"]
