"""Autonomous camera direction for single-camera sports video."""


from typing import TYPE_CHECKING, Any

__all__ = ["CameraDirector", "DirectorConfig", "load_config"]

if TYPE_CHECKING:  # pragma: no cover - for static type checkers only
    from .config import DirectorConfig, load_config
    from .director import CameraDirector


def __getattr__(name: str) -> Any:
    if name == "CameraDirector":
        from .director import CameraDirector as _CameraDirector

        globals()["CameraDirector"] = _CameraDirector
        return _CameraDirector
    if name in __all__:
        from .config import DirectorConfig as _DirectorConfig, load_config as _load_config

        globals().update({"DirectorConfig": _DirectorConfig, "load_config": _load_config})
        return globals()[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
