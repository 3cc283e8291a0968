"""Production build: frontend bundle, fat jar, native app image."""

import json
import logging
import shutil
import subprocess
from pathlib import Path

from caffeine import shell
from caffeine.errors import BuildError, CaffeineError

logger = logging.getLogger(__name__)

BUILD_DIR = "caffeine-build"
NATIVE_DIR = "dist-native"
FRONTEND_DIST = "dist"
PROD_JAR = "Caffeine-App-Prod.jar"
MAIN_CLASS = "org.caffeine.app.Launcher"
DEFAULT_NAME = "CaffeineApp"
DEFAULT_VERSION = "1.0.0"


def _run(step, command, cwd):
    logger.debug("Running %s", " ".join(command))
    try:
        subprocess.run(command, cwd=cwd, check=True)
    except FileNotFoundError as exc:
        raise BuildError(step, f"{command[0]} not found in PATH") from exc
    except subprocess.CalledProcessError as exc:
        raise BuildError(step, f"{command[0]} exited with code {exc.returncode}") from exc


def _fresh_dir(path: Path):
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


def prepare_frontend(project: Path):
    _run("prepare", ["npm", "run", "prepare-build"], project)


def embed_frontend(project: Path, jar=None) -> Path:
    """Copy the shell jar and pack ``dist/`` into it under ``frontend/``."""
    build_dir = project / BUILD_DIR
    prod_jar = build_dir / PROD_JAR
    try:
        _fresh_dir(build_dir)
        shutil.copyfile(jar or shell.find_jar(), prod_jar)
    except CaffeineError as exc:
        raise BuildError("embed", str(exc)) from exc
    except OSError as exc:
        raise BuildError("embed", f"Failed to embed JAR: {exc}") from exc

    dist = project / FRONTEND_DIST
    if not dist.is_dir():
        logger.warning("%s/ folder not found. Make sure npm run prepare-build created it", FRONTEND_DIST)
        return prod_jar

    try:
        shutil.copytree(dist, build_dir / "frontend")
    except OSError as exc:
        raise BuildError("embed", f"Failed to stage {FRONTEND_DIST}/: {exc}") from exc
    _run("embed", ["jar", "uf", str(prod_jar), "-C", str(build_dir), "frontend"], project)
    return prod_jar


def read_app_info(project: Path):
    manifest = project / "package.json"
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise BuildError("package", f"Cannot read {manifest}: {exc}") from exc
    return data.get("name") or DEFAULT_NAME, data.get("version") or DEFAULT_VERSION


def package_native(project: Path):
    native_dir = project / NATIVE_DIR
    if native_dir.exists():
        shutil.rmtree(native_dir)

    name, version = read_app_info(project)
    logger.info("App name: %s", name)
    logger.info("App version: %s", version)
    _run("package", [
        "jpackage",
        "--type", "app-image",
        "--name", name,
        "--input", str(project / BUILD_DIR),
        "--main-jar", PROD_JAR,
        "--main-class", MAIN_CLASS,
        "--dest", NATIVE_DIR,
        "--app-version", version,
    ], project)
    return native_dir / name


def build(project=None, jar=None, on_step=None):
    """Run all three steps; ``on_step(index, label)`` reports progress."""
    project = Path(project or Path.cwd())
    steps = [
        ("Preparing frontend", lambda: prepare_frontend(project)),
        ("Embedding frontend in JAR", lambda: embed_frontend(project, jar)),
        ("Creating native executable with jpackage", lambda: package_native(project)),
    ]
    result = None
    for index, (label, step) in enumerate(steps, 1):
        if on_step:
            on_step(index, label)
        result = step()
    return result
