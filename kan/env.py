"""``.env`` loading for the API entrypoint and the CLI."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional, Union

from dotenv import find_dotenv, load_dotenv

PathLike = Union[str, Path]

ENV_FILE_VARIABLE = "KAN_ENV_FILE"

_loaded = False


def _candidates(extra_paths: Optional[Iterable[PathLike]]) -> list[Path]:
    paths: list[Path] = [Path(p).expanduser() for p in extra_paths or ()]
    explicit = os.getenv(ENV_FILE_VARIABLE)
    if explicit:
        paths.append(Path(explicit).expanduser())
    found = find_dotenv(usecwd=True)
    if found:
        paths.append(Path(found))
    return paths


def load_env(*, override: bool = False, extra_paths: Iterable[PathLike] | None = None) -> bool:
    """Load environment variables from ``.env`` files.

    Files are read in order: ``extra_paths``, then ``$KAN_ENV_FILE``, then the
    nearest ``.env`` above the working directory. Each file is read once per
    call and, unless ``override`` is set, earlier values win.

    Returns ``True`` when at least one file was loaded.
    """

    global _loaded

    if _loaded and not override and extra_paths is None:
        return True

    seen: set[Path] = set()
    loaded_any = False
    for path in _candidates(extra_paths):
        if not path.is_file():
            continue
        resolved = path.resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        loaded_any = load_dotenv(resolved, override=override) or loaded_any

    if not override:
        _loaded = True
    return loaded_any
