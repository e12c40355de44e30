from __future__ import annotations

from setuptools import find_namespace_packages, setup

_LAYERS = ["domain", "application", "infrastructure", "server", "config"]

setup(
    name="disc-shelf",
    version="0.1.0",
    # Repo convention: backend code lives under `backend/` and is imported
    # by layer name (`from domain.collection import ...`).
    package_dir={"": "backend"},
    # `server/` and `config/` carry no __init__.py.
    packages=find_namespace_packages(
        where="backend",
        include=_LAYERS + [f"{name}.*" for name in _LAYERS],
    ),
    python_requires=">=3.10",
    install_requires=[
        "pydantic==2.10.6",
        "python-dotenv>=1.0",
        "fastapi>=0.115",
        "uvicorn>=0.30",
        # Multipart uploads (photo import endpoints).
        "python-multipart>=0.0.9",
        "aiohttp>=3.9",
        # Sources-dir watcher.
        "watchdog>=4.0",
    ],
    extras_require={
        # fastapi.testclient needs httpx.
        "test": ["pytest>=8.0", "httpx>=0.27"],
    },
    entry_points={
        "console_scripts": [
            "disc-shelf-csv-import=infrastructure.integrations.csv_import.main:main",
        ],
    },
)
