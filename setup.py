"""
setup.py for installing the cruisempc Python package.

The package lives under python/:
    pip install -e .

Run the demonstration with:
    cruisempc --ticks 200
"""

from setuptools import find_packages, setup

setup(
    name="cruisempc",
    version="0.1.0",
    description="Receding-horizon MPC speed control of a point-mass vehicle",
    package_dir={"": "python"},
    packages=find_packages("python"),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.7",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "hypothesis>=6.0",
            "black>=23.0",
            "ruff>=0.1.0",
            "mypy>=1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cruisempc=cruisempc.cli:main",
        ],
    },
)
