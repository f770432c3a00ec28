"""Runtime loading of provider modules from a dotted name or a file path."""

from __future__ import annotations

import importlib
import importlib.util
import sys
from pathlib import Path
from types import ModuleType
from urllib.parse import unquote, urlparse
from uuid import uuid4

from soustack_mcp.errors import ProviderLoadError


def load_provider_module(reference: str) -> ModuleType:
    """Import a provider given a module name, a `.py` path, or a `file://` URL.

    Dotted names go through the regular import system (and its module cache).
    File references are executed into a fresh, unregistered module on every
    call, so edits to a provider script are picked up without a restart.
    """

    reference = reference.strip()
    if not reference:
        raise ProviderLoadError(reference, "empty module reference")

    path = _as_path(reference)
    if path is not None:
        return _load_from_path(reference, path)

    try:
        return importlib.import_module(reference)
    except ImportError as exc:
        raise ProviderLoadError(reference, str(exc)) from exc
    except Exception as exc:
        raise ProviderLoadError(reference, f"{type(exc).__name__}: {exc}") from exc


def _as_path(reference: str) -> Path | None:
    if reference.startswith("file://"):
        return Path(unquote(urlparse(reference).path))
    if reference.endswith(".py") or "/" in reference or "\\" in reference:
        return Path(reference)
    return None


def _load_from_path(reference: str, path: Path) -> ModuleType:
    if not path.is_file():
        raise ProviderLoadError(reference, f"no such file: {path}")

    module_name = f"_soustack_provider_{path.stem}_{uuid4().hex}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ProviderLoadError(reference, "not a loadable Python source file")

    module = importlib.util.module_from_spec(spec)
    # Registered only while executing so decorators that look the module up work.
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise ProviderLoadError(reference, f"{type(exc).__name__}: {exc}") from exc
    finally:
        sys.modules.pop(module_name, None)
    return module
