"""
object-controller: keyboard test harness for a simulated environment

Publishes object poses and grasp/release events over a shared-memory
message bus from single keystrokes.
"""

from setuptools import setup, find_packages
from pathlib import Path

long_description = (Path(__file__).parent / "README.md").read_text(encoding="utf-8")

setup(
    name="object-controller",
    version="1.0.0",
    author="RAFT Robotics",
    description=(
        "Keyboard-driven pose and grasp event publisher for simulator testing."
    ),
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.21",
    ],
    extras_require={
        "msgpack": ["msgpack>=1.0"],
        "dev": [
            "pytest>=7.0",
            "pytest-timeout",
            "msgpack>=1.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "object-controller = object_controller.cli:main",
            "object-controller-echo = object_controller.cli:echo_main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Intended Audience :: Developers",
        "Topic :: Scientific/Engineering :: Robotics",
    ],
)
