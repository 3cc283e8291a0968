import json
import logging
import shutil
from pathlib import Path

from caffeine.errors import ScaffoldError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "template"
MANIFEST = "package.json"


def create_project(name, parent=None, template=TEMPLATE_DIR) -> Path:
    """Copy the project template to ``parent/name`` and stamp its name."""
    if not name:
        raise ScaffoldError("Project name is required")

    project = Path(parent or Path.cwd()) / name
    template = Path(template)
    if project.exists():
        raise ScaffoldError(f"Directory '{name}' already exists")
    if not template.is_dir():
        raise ScaffoldError(f"Template not found at: {template}")

    logger.info("Copying template from: %s", template)
    shutil.copytree(template, project)

    manifest = project / MANIFEST
    data = json.loads(manifest.read_text(encoding="utf-8"))
    data["name"] = name
    manifest.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return project
