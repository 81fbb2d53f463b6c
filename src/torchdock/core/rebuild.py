"""
Incremental PyTorch rebuilds inside the container.

The image installs PyTorch in editable mode, so after editing sources only
`python setup.py build` is needed. The libraries in torch/lib are symlinks
into build/lib, which makes the rebuilt libraries visible without a
reinstall.
"""

import os
import sys
from pathlib import Path
from typing import List, Union

from torchdock.core.exceptions import TorchdockError
from torchdock.core.logger import get_logger
from torchdock.core.shell import run_command

logger = get_logger(__name__)

DEFAULT_LIBRARY_PATTERN = "libtorch_cpu.*"


def _check_source_dir(source_dir: Path) -> None:
    if not source_dir.is_dir():
        raise TorchdockError(f"PyTorch source directory not found: {source_dir}")
    if not (source_dir / "setup.py").is_file():
        raise TorchdockError(f"No setup.py in {source_dir}; is this a PyTorch checkout?")


def rebuild(source_dir: Union[str, Path], python: str = sys.executable) -> None:
    """
    Run an incremental build of a PyTorch checkout.

    Output streams to the terminal.

    Args:
        source_dir: PyTorch source tree
        python: Interpreter used to run setup.py

    Raises:
        TorchdockError: If source_dir is not a PyTorch checkout
        CommandError: If the build fails
    """
    source_dir = Path(source_dir)
    _check_source_dir(source_dir)

    logger.info(f"Starting PyTorch incremental rebuild in {source_dir}")
    run_command([python, "setup.py", "build"], cwd=source_dir, capture=False, check=True)


def refresh_library_links(
    source_dir: Union[str, Path],
    pattern: str = DEFAULT_LIBRARY_PATTERN,
) -> List[Path]:
    """
    Point torch/lib at the freshly built libraries in build/lib.

    Each matching file in build/lib gets a relative symlink in torch/lib,
    replacing whatever was there.

    Args:
        source_dir: PyTorch source tree
        pattern: Glob for library names in build/lib

    Returns:
        Paths of the links that were created

    Raises:
        TorchdockError: If torch/lib does not exist
    """
    source_dir = Path(source_dir)
    build_lib = source_dir / "build" / "lib"
    torch_lib = source_dir / "torch" / "lib"

    if not torch_lib.is_dir():
        raise TorchdockError(f"torch/lib not found in {source_dir}")
    if not build_lib.is_dir():
        logger.warning(f"No build/lib in {source_dir}; nothing to link")
        return []

    links = []
    for library in sorted(build_lib.glob(pattern)):
        link = torch_lib / library.name
        if link.is_symlink() or link.exists():
            link.unlink()
        os.symlink(Path("..") / ".." / "build" / "lib" / library.name, link)
        links.append(link)
        logger.debug(f"Linked {link} -> {library}")

    return links
