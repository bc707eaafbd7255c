"""
Setup validation
- required project files are present
- every runtime dependency can be imported
- the application module imports cleanly

Exit code 1 on any failure.
"""

import importlib
import sys
import os
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent
ROOT_DIR = BACKEND_DIR.parent
sys.path.insert(0, str(BACKEND_DIR))

REQUIRED_FILES = [
    ROOT_DIR / "pyproject.toml",
    BACKEND_DIR / "main.py",
    BACKEND_DIR / "tradewiser" / "main.py",
    BACKEND_DIR / "tradewiser" / "core" / "config.py",
    BACKEND_DIR / "tradewiser" / "db" / "session.py",
    BACKEND_DIR / "tradewiser" / "api" / "api.py",
]

# import name -> distribution name
REQUIRED_MODULES = {
    "fastapi": "fastapi",
    "uvicorn": "uvicorn",
    "sqlalchemy": "sqlalchemy",
    "aiosqlite": "aiosqlite",
    "pydantic": "pydantic",
    "pydantic_settings": "pydantic-settings",
    "apscheduler": "apscheduler",
    "httpx": "httpx",
    "multipart": "python-multipart",
    "itsdangerous": "itsdangerous",
    "werkzeug": "werkzeug",
}


def check_files() -> list:
    print("📁 Required files")
    missing = []
    for path in REQUIRED_FILES:
        if path.exists():
            print(f"   ✓ {path.relative_to(ROOT_DIR)}")
        else:
            print(f"   ❌ missing {path.relative_to(ROOT_DIR)}")
            missing.append(str(path))
    return missing


def check_modules() -> list:
    print("📦 Dependencies")
    missing = []
    for module, distribution in REQUIRED_MODULES.items():
        try:
            importlib.import_module(module)
            print(f"   ✓ {distribution}")
        except ImportError as e:
            print(f"   ❌ {distribution}: {e}")
            missing.append(distribution)
    return missing


def check_app() -> list:
    print("🚀 Application")
    try:
        importlib.import_module("tradewiser.main")
        print("   ✓ tradewiser.main imported")
        return []
    except Exception as e:
        print(f"   ❌ tradewiser.main: {e}")
        return ["tradewiser.main"]


def main() -> int:
    problems = check_files() + check_modules()
    if not problems:
        problems += check_app()

    if problems:
        print(f"\n💥 Setup incomplete ({len(problems)} problem(s))")
        print("   pip install -e .")
        return 1
    print("\n✅ Setup looks good")
    return 0


if __name__ == "__main__":
    os.chdir(BACKEND_DIR)
    sys.exit(main())
