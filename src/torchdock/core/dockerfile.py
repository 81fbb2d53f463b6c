"""
Dockerfile rendering.

The image compiles PyTorch from source on top of an NVIDIA CUDA/cuDNN devel
image. Everything that varies between machines (toolkit version, GPU
architectures, parallelism, optional BLAS and torchvision/torchaudio) comes
from an ImageSpec; the rest of the recipe is fixed and lives in the Jinja2
template below.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from jinja2 import BaseLoader, Environment, StrictUndefined

from torchdock.core.config import Config
from torchdock.core.exceptions import TorchdockError
from torchdock.core.logger import get_logger

logger = get_logger(__name__)

CPU_BLAS_CHOICES = ("none", "mkl", "openblas")
EXTRA_REPOSITORIES = {
    "vision": "https://github.com/pytorch/vision.git",
    "audio": "https://github.com/pytorch/audio.git",
}

SYSTEM_PACKAGES = [
    "build-essential",
    "ca-certificates",
    "ccache",
    "curl",
    "git",
    "libjpeg-dev",
    "libpng-dev",
    "libgomp1",
    "ninja-build",
    "software-properties-common",
    "wget",
    "gpg",
]

PYTHON_BUILD_PACKAGES = [
    "numpy",
    "pyyaml",
    "typing_extensions",
    "sympy",
    "filelock",
    "networkx",
    "jinja2",
    "fsspec",
]

PYTHON_TEST_PACKAGES = [
    "expecttest",
    "tzdata",
]

MIN_CMAKE_VERSION = (3, 27)
ENV_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Printed by `pytorch-info` inside the container
PYTORCH_INFO_SCRIPT = """\
#!/usr/bin/env python3
import subprocess

import torch

print("PyTorch Build Information:")
print(f"PyTorch version: {torch.__version__}")
print(f"CUDA available: {torch.cuda.is_available()}")
print(f"CUDA version: {torch.version.cuda}")
print(f"cuDNN version: {torch.backends.cudnn.version()}")
print(f"Number of GPUs: {torch.cuda.device_count()}")
if torch.cuda.device_count() > 0:
    print(f"GPU 0: {torch.cuda.get_device_name(0)}")
try:
    subprocess.run(["nvidia-smi"], check=False)
except FileNotFoundError:
    print("nvidia-smi: command not found")
"""

# Fallback for `torchdock rebuild` when torchdock is not installed in the image
REBUILD_SCRIPT = """\
#!/bin/bash
# Incremental PyTorch rebuild: only changed files are recompiled.
set -e

echo "Starting PyTorch incremental rebuild..."
cd /workspace/pytorch
python setup.py build

echo "Build complete! The symlinks in torch/lib/ now point to the updated libraries."
"""

HELPER_SCRIPTS = {
    "pytorch-info": PYTORCH_INFO_SCRIPT,
    "rebuild-pytorch.sh": REBUILD_SCRIPT,
}

DOCKERFILE_TEMPLATE = """\
# Dockerfile for building PyTorch from source with CUDA {{ spec.cuda_version }}
# Generated by torchdock {{ version }}
FROM {{ spec.base_image }}

ARG MAX_JOBS={{ spec.max_jobs }}
ARG TORCH_CUDA_ARCH_LIST="{{ spec.cuda_arch_list | dq }}"

ENV DEBIAN_FRONTEND=noninteractive \\
    CUDA_HOME=/usr/local/cuda \\
    CUDA_PATH=/usr/local/cuda \\
    CUDA_TOOLKIT_ROOT_DIR=/usr/local/cuda \\
    CUDNN_LIB_DIR=/usr/local/cuda/lib64 \\
    CUDA_BIN_PATH=/usr/local/cuda/bin \\
    PATH=/usr/local/cuda/bin:${PATH} \\
    LD_LIBRARY_PATH=/usr/local/cuda/lib64:${LD_LIBRARY_PATH} \\
    TORCH_CUDA_ARCH_LIST=${TORCH_CUDA_ARCH_LIST} \\
    FORCE_CUDA=1 \\
    USE_CUDA=1 \\
    MAX_JOBS=${MAX_JOBS} \\
    CXXFLAGS="{{ spec.cxxflags | dq }}"
{%- for key, value in spec.env | dictsort %}
ENV {{ key }}="{{ value | dq }}"
{%- endfor %}

# System dependencies
RUN apt-get update && apt-get install -y --no-install-recommends \\
{%- for package in system_packages %}
    {{ package }} \\
{%- endfor %}
    && rm -rf /var/lib/apt/lists/*

# CMake >= {{ min_cmake }} from Kitware (Ubuntu 22.04 ships 3.22)
RUN wget -O - https://apt.kitware.com/keys/kitware-archive-latest.asc 2>/dev/null | \\
    gpg --dearmor - | tee /usr/share/keyrings/kitware-archive-keyring.gpg >/dev/null && \\
    echo 'deb [signed-by=/usr/share/keyrings/kitware-archive-keyring.gpg] https://apt.kitware.com/ubuntu/ jammy main' | \\
    tee /etc/apt/sources.list.d/kitware.list >/dev/null && \\
    apt-get update && \\
    apt-get install -y cmake && \\
    rm -rf /var/lib/apt/lists/*

RUN cmake --version && \\
    python3 -c "import re, subprocess; \\
    v = subprocess.check_output(['cmake', '--version']).decode(); \\
    major, minor = map(int, re.search(r'(\\d+)\\.(\\d+)', v).groups()); \\
    assert (major, minor) >= {{ min_cmake_tuple }}, f'CMake {major}.{minor} is too old, need >={{ min_cmake }}'"

# Python {{ spec.python_version }}
RUN add-apt-repository ppa:deadsnakes/ppa && \\
    apt-get update && \\
    apt-get install -y --no-install-recommends \\
    python{{ spec.python_version }} \\
    python{{ spec.python_version }}-dev \\
    python{{ spec.python_version }}-distutils \\
    python3-pip \\
    && rm -rf /var/lib/apt/lists/*

RUN update-alternatives --install /usr/bin/python3 python3 /usr/bin/python{{ spec.python_version }} 1 && \\
    update-alternatives --install /usr/bin/python python /usr/bin/python{{ spec.python_version }} 1

RUN python3 -m pip install --upgrade pip setuptools wheel

RUN pip install --no-cache-dir \\
{%- for package in build_packages %}
    {{ package }}{% if not loop.last %} \\{% endif %}
{%- endfor %}

# PyTorch source
{%- if spec.clone %}
RUN git clone --recursive {{ spec.repository }} /workspace/pytorch
{%- else %}
COPY {{ spec.source_dir }} /workspace/pytorch/
{%- endif %}

WORKDIR /workspace/pytorch

RUN git submodule sync && \\
    git submodule update --init --recursive
{%- if spec.cpu_blas == "mkl" %}

# Intel MKL for CPU operations
RUN pip install --no-cache-dir mkl-static mkl-include
{%- elif spec.cpu_blas == "openblas" %}

# OpenBLAS for CPU operations
RUN apt-get update && apt-get install -y --no-install-recommends libopenblas-dev && \\
    rm -rf /var/lib/apt/lists/*
{%- endif %}

# MAGMA for CUDA {{ spec.cuda_version }}
RUN bash .ci/docker/common/install_magma.sh {{ spec.cuda_version }}

RUN make triton

ENV CMAKE_PREFIX_PATH=/usr/local/cuda:/usr/local:/usr:${CMAKE_PREFIX_PATH}

# Editable install for fast incremental rebuilds
RUN python3 -m pip install --no-build-isolation -v -e .

RUN bash -c "cd /workspace/pytorch/torch/lib && ln -sf ../../build/lib/libtorch_cpu.* ."

RUN python3 -c "import torch; print(f'PyTorch version: {torch.__version__}'); print(f'CUDA available: {torch.cuda.is_available()}'); print(f'CUDA version: {torch.version.cuda}')"
{%- for name, repository in extras %}

RUN git clone --recursive {{ repository }} /workspace/{{ name }} && \\
    cd /workspace/{{ name }} && \\
    python3 -m pip install --no-build-isolation -v -e .
{%- endfor %}

WORKDIR /workspace

COPY pytorch-info /usr/local/bin/pytorch-info
COPY rebuild-pytorch.sh /workspace/rebuild-pytorch.sh
RUN chmod +x /usr/local/bin/pytorch-info /workspace/rebuild-pytorch.sh

RUN pip install --no-cache-dir \\
{%- for package in test_packages %}
    {{ package }}{% if not loop.last %} \\{% endif %}
{%- endfor %}

CMD ["/bin/bash"]
"""


@dataclass
class ImageSpec:
    """Everything the Dockerfile template needs."""

    base_image: str = "nvidia/cuda:13.0.0-cudnn-devel-ubuntu22.04"
    cuda_version: str = "13.0"
    python_version: str = "3.10"
    max_jobs: int = 8
    cuda_arch_list: str = "12.1"
    source_dir: str = "pytorch"
    clone: bool = False
    repository: str = "https://github.com/pytorch/pytorch.git"
    cpu_blas: str = "none"
    extras: List[str] = field(default_factory=list)
    cxxflags: str = "-Wno-stringop-overflow"
    env: Dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        """
        Reject values the template cannot express.

        Raises:
            ValueError: On an invalid field
        """
        if int(self.max_jobs) < 1:
            raise ValueError(f"max_jobs must be at least 1, got {self.max_jobs}")
        if self.cpu_blas not in CPU_BLAS_CHOICES:
            raise ValueError(
                f"cpu_blas must be one of {', '.join(CPU_BLAS_CHOICES)}, got {self.cpu_blas!r}"
            )
        unknown = [e for e in self.extras if e not in EXTRA_REPOSITORIES]
        if unknown:
            raise ValueError(
                f"Unknown extras: {', '.join(unknown)} "
                f"(choose from {', '.join(EXTRA_REPOSITORIES)})"
            )
        if not self.cuda_arch_list.strip():
            raise ValueError("cuda_arch_list must not be empty")
        bad_names = [k for k in self.env if not ENV_NAME_PATTERN.match(k)]
        if bad_names:
            raise ValueError(f"Invalid environment variable names: {', '.join(bad_names)}")
        multiline = [k for k, v in self.env.items() if "\n" in v]
        if "\n" in self.cxxflags:
            multiline.append("cxxflags")
        if multiline:
            raise ValueError(f"Values must be single-line: {', '.join(multiline)}")

    @classmethod
    def from_config(cls, config: Config) -> "ImageSpec":
        """Build an ImageSpec from the [image] and [build] sections."""
        image = config.image
        build = config.build
        defaults = cls()
        return cls(
            base_image=image.get("base_image", defaults.base_image),
            cuda_version=str(image.get("cuda_version", defaults.cuda_version)),
            python_version=str(image.get("python_version", defaults.python_version)),
            max_jobs=int(build.get("max_jobs", defaults.max_jobs)),
            cuda_arch_list=str(build.get("cuda_arch_list", defaults.cuda_arch_list)),
            source_dir=build.get("source_dir", defaults.source_dir),
            clone=bool(build.get("clone", defaults.clone)),
            repository=build.get("repository", defaults.repository),
            cpu_blas=build.get("cpu_blas", defaults.cpu_blas),
            extras=list(build.get("extras", [])),
            cxxflags=build.get("cxxflags", defaults.cxxflags),
            env={str(k): str(v) for k, v in build.get("env", {}).items()},
        )


def double_quote_escape(value: str) -> str:
    """Escape a value for use inside a double-quoted Dockerfile string."""
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def render_dockerfile(spec: ImageSpec) -> str:
    """
    Render the Dockerfile for an ImageSpec.

    Raises:
        ValueError: If the spec fails validation
    """
    from torchdock import __version__

    spec.validate()

    env = Environment(loader=BaseLoader(), undefined=StrictUndefined, keep_trailing_newline=True)
    env.filters["dq"] = double_quote_escape
    template = env.from_string(DOCKERFILE_TEMPLATE)

    return template.render(
        spec=spec,
        version=__version__,
        system_packages=SYSTEM_PACKAGES,
        build_packages=PYTHON_BUILD_PACKAGES,
        test_packages=PYTHON_TEST_PACKAGES,
        min_cmake=".".join(str(p) for p in MIN_CMAKE_VERSION),
        min_cmake_tuple=repr(MIN_CMAKE_VERSION),
        extras=[(name, EXTRA_REPOSITORIES[name]) for name in spec.extras],
    )


def write_dockerfile(
    spec: ImageSpec,
    path: Union[str, Path],
    force: bool = False,
    context: Optional[Union[str, Path]] = None,
) -> Path:
    """
    Render and write the Dockerfile, plus the helper scripts it COPYs.

    Args:
        spec: Image specification
        path: Dockerfile destination
        force: Overwrite an existing Dockerfile
        context: Build context receiving the helper scripts
                 (default: the Dockerfile's directory)

    Returns:
        Path to the written Dockerfile

    Raises:
        TorchdockError: If the file exists and force is False
        ValueError: If the spec fails validation
    """
    path = Path(path)
    if path.exists() and not force:
        raise TorchdockError(f"File already exists: {path}")

    content = render_dockerfile(spec)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")

    context_dir = Path(context) if context is not None else path.parent
    context_dir.mkdir(parents=True, exist_ok=True)
    for name, body in HELPER_SCRIPTS.items():
        script = context_dir / name
        script.write_text(body, encoding="utf-8")
        script.chmod(0o755)

    logger.info(f"Wrote {path} and helper scripts to {context_dir}")
    return path
