"""Environment diagnosis for ``caffeine doctor``."""

import platform as _platform
import re
import subprocess
import sys
from dataclasses import dataclass
from typing import Optional

from rich.panel import Panel
from rich.table import Table

from caffeine import shell
from caffeine.errors import JarNotFoundError

JAVA_MIN = 21
NODE_MIN = 16

_JAVA_VERSION = re.compile(r'version "((\d+)[^"]*)"')
_NODE_VERSION = re.compile(r"v(\d+)\.(\d+)")


@dataclass
class CommandCheck:
    available: bool
    version: Optional[str] = None
    error: Optional[str] = None


@dataclass
class RequirementCheck:
    available: bool
    ok: bool
    version: str


def check_command(command, args=("--version",)) -> CommandCheck:
    try:
        proc = subprocess.run(
            [command, *args], capture_output=True, text=True, timeout=15
        )
    except (OSError, subprocess.TimeoutExpired):
        return CommandCheck(False, error="Command not found")

    # java -version reports on stderr
    output = (proc.stdout + proc.stderr).strip()
    if proc.returncode == 0:
        return CommandCheck(True, version=output.splitlines()[0] if output else "")
    return CommandCheck(False, error=output)


def check_java() -> RequirementCheck:
    result = check_command("java", ["-version"])
    if result.available and result.version:
        match = _JAVA_VERSION.search(result.version)
        if match:
            return RequirementCheck(True, int(match.group(2)) >= JAVA_MIN, match.group(1))
    return RequirementCheck(result.available, False, "Not found")


def check_node() -> RequirementCheck:
    result = check_command("node", ["-v"])
    if result.available and result.version:
        match = _NODE_VERSION.search(result.version)
        if match:
            return RequirementCheck(True, int(match.group(1)) >= NODE_MIN, result.version)
    return RequirementCheck(result.available, False, "Not found")


def check_platform(platform=None):
    """Returns rows of (name, status, note)."""
    platform = platform or sys.platform
    rows = []
    if platform == "win32":
        rows.append(("Visual C++ Redist", "Unknown", "Check manually"))
        rows.append(("Graphics Drivers", "Unknown", "Update recommended"))
    elif platform.startswith("linux"):
        gtk = check_command("pkg-config", ["--exists", "gtk+-3.0"])
        rows.append((
            "GTK+ 3.0",
            "Available" if gtk.available else "Missing",
            "" if gtk.available else "Install: sudo apt install libgtk-3-dev",
        ))
        x11 = check_command("xset", ["q"])
        rows.append((
            "X11 Display",
            "Available" if x11.available else "Missing",
            "" if x11.available else "Check DISPLAY variable",
        ))
    elif platform == "darwin":
        xcode = check_command("xcode-select", ["-p"])
        rows.append((
            "Xcode Tools",
            "Available" if xcode.available else "Missing",
            "" if xcode.available else "Install: xcode-select --install",
        ))
    return rows


def _jar_present() -> bool:
    try:
        shell.find_jar()
    except JarNotFoundError:
        return False
    return True


def _mark(ok, good="OK", bad="Failed"):
    return f"[green]{good}[/green]" if ok else f"[red]{bad}[/red]"


def run_doctor(console) -> bool:
    console.print(Panel("[bold cyan]Caffeine System Diagnosis", expand=False))
    console.print(f"[dim]Platform: {sys.platform} {_platform.machine()}\n")

    with console.status("Checking system requirements..."):
        java = check_java()
        node = check_node()
        jar = _jar_present()

    table = Table("Requirement", "Status", "Version", header_style="bold cyan")
    table.add_row(f"Java {JAVA_MIN}+", _mark(java.ok), java.version)
    table.add_row(f"Node.js {NODE_MIN}+", _mark(node.ok), node.version)
    table.add_row(
        "Caffeine JAR", _mark(jar, "Found", "Missing"), "Available" if jar else "Not found"
    )
    console.print(table)

    with console.status("Checking platform dependencies..."):
        platform_rows = check_platform()
    if platform_rows:
        deps = Table("Platform Dependency", "Status", "Notes", header_style="bold yellow")
        for name, status, note in platform_rows:
            color = {"Available": "green", "Missing": "red"}.get(status, "yellow")
            deps.add_row(name, f"[{color}]{status}[/{color}]", note)
        console.print(deps)

    flags = "\n".join(f"  {arg}" for arg in shell.jvm_args())
    console.print(Panel(flags, title=f"JVM configuration ({sys.platform})", expand=False))

    ready = java.ok and node.ok and jar
    if ready:
        console.print(Panel(
            "[bold green]System ready for Caffeine development!\n"
            "[cyan]You can start creating projects with: [yellow]caffeine init my-app",
            border_style="green",
        ))
    else:
        issues = []
        if not java.ok:
            issues.append(f"- Install Java {JAVA_MIN} or higher")
        if not node.ok:
            issues.append(f"- Install Node.js {NODE_MIN} or higher")
        if not jar:
            issues.append(f"- Provide the shell jar (or set {shell.JAR_ENV})")
        console.print(Panel(
            "[bold yellow]Some requirements need attention:\n\n[red]" + "\n".join(issues),
            border_style="yellow",
        ))
    return ready
