import argparse
import asyncio
import logging
import signal
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from caffeine import __version__, builder, doctor, scaffold, shell
from caffeine.config import DEFAULT_PORT, PORT_ENV, ServerConfig
from caffeine.errors import BindError, BuildError, CaffeineError
from caffeine.liveserver import DevServer

REPO_URL = "https://github.com/Escobarq/Caffeine"

BUILD_HINTS = {
    "prepare": ["Make sure npm run prepare-build is defined in package.json"],
    "package": [
        "Make sure you have:",
        "  - Java 21+ installed",
        "  - jpackage available in PATH",
    ],
}

console = Console()
err_console = Console(stderr=True)


def error(msg):
    err_console.print(f"[red]x {escape(msg)}")


def success(msg):
    console.print(f"[green]v {escape(msg)}")


def info(msg):
    console.print(f"[cyan]i {escape(msg)}")


def warn(msg):
    err_console.print(f"[yellow]! {escape(msg)}")


def setup_logging(verbose=False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


# -------- init --------
def cmd_init(args):
    console.print(f"\n[cyan]Creating new Caffeine project: {args.name}")
    project = scaffold.create_project(args.name)
    success("Project created successfully!")
    console.print("\n[bold]Next steps:")
    console.print(f"[cyan]   cd {project.name}")
    console.print("[cyan]   caffeine dev frontend")
    console.print(f"\n[dim]For more info: {REPO_URL}\n")
    return 0


# -------- dev --------
async def run_dev(config, launch_shell=True):
    jar = shell.find_jar() if launch_shell else None

    server = DevServer(config)
    await server.start()
    success(f"Hot-reload server started on {server.url}")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, stop.set)
    except (NotImplementedError, RuntimeError):
        # not available on Windows; KeyboardInterrupt is handled in main()
        pass

    proc = None
    try:
        if jar is not None:
            console.print("[cyan]Starting Caffeine application...")
            console.print(f"[dim]   JAR: {jar.name}")
            console.print(f"[dim]   Frontend Server: {server.url}\n")
            try:
                proc = await shell.launch(server.url, jar)
            except OSError as exc:
                error(f"Failed to start Java: {exc}")
                for hint in shell.startup_hints():
                    warn(hint)
                return 1

        waiters = [asyncio.ensure_future(stop.wait())]
        if proc is not None:
            waiters.append(asyncio.ensure_future(proc.wait()))
        _, pending = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        for waiter in pending:
            waiter.cancel()

        if proc is not None and proc.returncode is not None:
            return report_exit(proc.returncode)
        info("Stopping file watcher and server...")
        return 0
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
        if proc is not None and proc.returncode is None:
            proc.terminate()
            await proc.wait()
        await server.stop()


def report_exit(code):
    if code == 0:
        success("Caffeine application closed successfully")
        return 0
    error(f"Caffeine exited with code {code}")
    for hint in shell.troubleshooting_hints(code):
        info(hint)
    return code


def cmd_dev(args):
    config = ServerConfig.from_path(args.path, port=args.port, host=args.host)
    console.print("\n[cyan]Starting development mode with HOT RELOAD")
    info(f"Frontend path: {config.root}")
    try:
        return asyncio.run(run_dev(config, launch_shell=not args.no_shell))
    except BindError:
        info(f"Pick another port with --port or {PORT_ENV}")
        raise


# -------- build --------
def cmd_build(args):
    console.print("\n[cyan]Building Caffeine application for production...\n")

    def on_step(index, label):
        console.print(f"\n[bold]  [{index}/3] {label}...")

    try:
        app_dir = builder.build(on_step=on_step)
    except BuildError as exc:
        for hint in BUILD_HINTS.get(exc.step, []):
            warn(hint)
        raise
    success("Build completed successfully!")
    console.print("\n[bold]Your application is ready in:")
    console.print(f"[cyan]   {app_dir}/bin/{app_dir.name}\n")
    return 0


# -------- doctor --------
def cmd_doctor(args):
    doctor.run_doctor(console)
    console.print(f"[dim]\nFor more help: {REPO_URL}#readme\n")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog="caffeine",
        description="Build desktop apps with Java + Web",
        epilog=f"Documentation: {REPO_URL}#readme",
    )
    parser.add_argument("--version", action="version", version=f"caffeine-cli v{__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("init", help="Create a new Caffeine project")
    p.add_argument("name")
    p.set_defaults(func=cmd_init)

    p = sub.add_parser("dev", help="Start development server")
    p.add_argument("path", help="frontend directory to serve")
    p.add_argument("--port", type=int, default=None,
                   help=f"default: ${PORT_ENV} or {DEFAULT_PORT}")
    p.add_argument("--host", default=None)
    p.add_argument("--no-shell", action="store_true",
                   help="serve only, do not start the desktop shell")
    p.set_defaults(func=cmd_dev)

    p = sub.add_parser("build", help="Build for production")
    p.set_defaults(func=cmd_build)

    p = sub.add_parser("doctor", help="Check system requirements")
    p.set_defaults(func=cmd_doctor)

    sub.add_parser("help", help="Show this help message")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if getattr(args, "func", None) is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except CaffeineError as exc:
        error(str(exc))
        return 1
    except KeyboardInterrupt:
        info("Stopped")
        return 0


if __name__ == "__main__":
    sys.exit(main())
