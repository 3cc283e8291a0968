"""Locating and starting the JVM desktop shell."""

import asyncio
import logging
import os
import sys
from pathlib import Path

from caffeine.errors import JarNotFoundError

logger = logging.getLogger(__name__)

JAR_NAME = "Caffeine-1.0.0-all.jar"
JAR_ENV = "CAFFEINE_JAR"
DEFAULT_JAR = Path(__file__).parent / "bin" / JAR_NAME
ISSUES_URL = "https://github.com/Escobarq/Caffeine/issues"

BASE_JVM_ARGS = [
    "--enable-native-access=ALL-UNNAMED",
    "--add-opens",
    "javafx.controls/javafx.scene.control=ALL-UNNAMED",
    "--add-opens",
    "javafx.graphics/javafx.scene=ALL-UNNAMED",
    "--add-opens",
    "javafx.base/javafx.util=ALL-UNNAMED",
]


def find_jar() -> Path:
    jar = Path(os.environ.get(JAR_ENV) or DEFAULT_JAR)
    if not jar.is_file():
        raise JarNotFoundError(jar)
    return jar


def jvm_args(platform=None):
    platform = platform or sys.platform
    if platform == "win32":
        # software renderer as fallback for flaky D3D drivers
        extra = ["-Dprism.order=sw,d3d", "-Dprism.verbose=false"]
    elif platform.startswith("linux"):
        extra = ["-Dprism.order=gtk"]
    else:
        extra = ["-Dprism.order=es2,sw"]
    return BASE_JVM_ARGS + extra + ["-Djava.awt.headless=false"]


def java_command(jar, *args, platform=None):
    return ["java", *jvm_args(platform), "-jar", str(jar), *args]


def startup_hints(platform=None):
    """Shown when ``java`` itself could not be started."""
    platform = platform or sys.platform
    hints = ["Make sure Java 21+ is installed: java -version"]
    if platform == "win32":
        hints += [
            "Windows JavaFX troubleshooting:",
            "  1. Update graphics drivers",
            "  2. Install Visual C++ Redistributable",
            "  3. Try running as administrator",
            "  4. Check Windows Display Settings",
        ]
    return hints


def troubleshooting_hints(exit_code, platform=None):
    """Shown after the shell exited with a failure code."""
    if exit_code != 1:
        return []
    platform = platform or sys.platform
    hints = [
        "JavaFX Runtime Error - Possible solutions:",
        "  1. Update Java to latest version (21+)",
        "  2. Update graphics drivers",
    ]
    if platform == "win32":
        hints += [
            "  3. Install Microsoft Visual C++ Redistributable",
            "  4. Run 'java -version' to verify Java installation",
            "  5. Try running command prompt as administrator",
        ]
    elif platform.startswith("linux"):
        hints += [
            "  3. Install libgtk-3-dev libxss1 libgconf-2-4",
            "  4. Check DISPLAY variable: echo $DISPLAY",
        ]
    elif platform == "darwin":
        hints.append("  3. Update macOS and Xcode Command Line Tools")
    hints.append(f"  For more help: {ISSUES_URL}")
    return hints


async def launch(url, jar=None):
    """Start the shell with ``url`` as its content source."""
    jar = jar or find_jar()
    command = java_command(jar, url)
    logger.debug("Launching shell: %s", " ".join(command))
    return await asyncio.create_subprocess_exec(*command)
