import re
import subprocess
from pathlib import Path

from setuptools import find_packages, setup


def get_version() -> str:
    try:
        output = subprocess.run(
            [
                "git", "--git-dir", Path(__file__).parent / ".git",
                "describe", "--tags"
            ],
            capture_output=True
        ).stdout.decode().strip().split("-")
    except FileNotFoundError:
        # git is not installed
        output = [""]
    # Output is either v1.3.5 if the tag points to the current commit or
    # something like this v1.3.5-11-g3b467ad if it doesn't

    version = ".".join(re.findall(r"\d+", output[0])) or "0.dev0"
    if len(output) > 1:
        return f"{version}+{output[-1]}"
    else:
        return version


setup(
    name="squadmatch",
    version=get_version(),
    packages=find_packages(include=["squadmatch", "squadmatch.*"]),
    license="GPLv3",
    description="Team building and matchmaking server",
    python_requires=">=3.10",
    install_requires=[
        "aiohttp",
        "docopt",
        "humanize",
        "prometheus_client",
        "pyyaml",
        "uvloop; sys_platform != 'win32'",
    ],
    extras_require={
        "test": [
            "hypothesis",
            "pytest",
            "pytest-asyncio",
        ],
    },
    include_package_data=True
)
