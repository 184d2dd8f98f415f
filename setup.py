from setuptools import setup, find_packages
import os

# Read version from __init__.py
def get_version():
    """Get version from graygpu/__init__.py"""
    init_file = os.path.join(os.path.dirname(__file__), "graygpu", "__init__.py")
    with open(init_file, "r") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"\'')
    raise RuntimeError("Unable to find version string.")

# GPU Dependencies Version Notes:
# - CuPy: Use cupy-cuda12x for broad CUDA 12.x compatibility (not cupy-cuda120)
#
# Installation Examples:
# - Base package only (NumPy backend): pip install graygpu
# - With GPU support: pip install "graygpu[gpu]"
# - Full installation: pip install "graygpu[all]"

# Define extras_require with programmatic "all" extra
extras_require = {
    # Development dependencies (CPU-only testing)
    "dev": [
        "pytest>=7.4.0",
        "pytest-cov>=4.1.0",
        "coverage>=7.3.2",
    ],

    # GPU acceleration dependencies
    "gpu": [
        "cupy-cuda12x>=13.3.0,<14.0.0",
    ],
}

# Programmatically create "all" extra by combining all non-dev extras
all_deps = []
for extra_name, deps in extras_require.items():
    if extra_name not in ["dev"]:  # Exclude dev dependencies from "all"
        all_deps.extend(deps)

extras_require["all"] = all_deps

setup(
    name="graygpu",
    version=get_version(),
    description="Grayscale image filtering on GPU compute backends with packed 8-bit readback",
    long_description=open("README.md", "r", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Image Processing",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.9",
    keywords="image-processing, grayscale, gpu, cupy, cuda",
    packages=find_packages(include=["graygpu", "graygpu.*"]),
    install_requires=[
        "numpy>=1.26.4",
    ],
    extras_require=extras_require,
)
