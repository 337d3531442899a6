"""Materialise folder templates on disk or as mkdir scripts"""

import re
from pathlib import Path
from typing import Dict, List

from docrouter.logging_setup import get_logger
from docrouter.templates.registry import get_template_tree, flatten_tree

logger = get_logger(__name__)

WINDOWS_RESERVED_NAMES = {
    "CON", "PRN", "AUX", "NUL",
    "COM1", "COM2", "COM3", "COM4", "COM5", "COM6", "COM7", "COM8", "COM9",
    "LPT1", "LPT2", "LPT3", "LPT4", "LPT5", "LPT6", "LPT7", "LPT8", "LPT9",
}

MAX_FOLDER_NAME_LENGTH = 50


def sanitize_folder_name(name: str) -> str:
    """Reduce ``name`` to a folder name every filesystem accepts"""
    sanitized = re.sub(r"[^a-zA-Z0-9_\-]", "_", name)
    sanitized = re.sub(r"_+", "_", sanitized).strip("_")
    sanitized = sanitized[:MAX_FOLDER_NAME_LENGTH]

    if sanitized.upper() in WINDOWS_RESERVED_NAMES:
        sanitized = f"DIR_{sanitized}"
    if not sanitized:
        sanitized = "folder"
    return sanitized


def project_folder_name(project_code: str, project_object: str) -> str:
    return f"{project_code}_{sanitize_folder_name(project_object)}"


def _sanitized_paths(template: str) -> List[str]:
    tree = get_template_tree(template)
    return ["/".join(sanitize_folder_name(part) for part in path.split("/"))
            for path in flatten_tree(tree)]


def create_project_structure(root: Path, project_code: str, project_object: str,
                             template: str) -> List[str]:
    """
    Create the project folder and the whole template tree under ``root``

    Existing folders are left untouched, so the call can be repeated.

    Args:
        root: Directory that will contain the project folder
        project_code: Job code, e.g. ``2024-017``
        project_object: Free-text job description
        template: Registered template name

    Returns:
        Created folder paths relative to ``root``, in template order

    Raises:
        TemplateNotFoundError: If the template is not registered
    """
    relative_paths = _sanitized_paths(template)
    project_dir = Path(root) / project_folder_name(project_code, project_object)
    project_dir.mkdir(parents=True, exist_ok=True)

    created = []
    for relative in relative_paths:
        (project_dir / relative).mkdir(parents=True, exist_ok=True)
        created.append(f"{project_dir.name}/{relative}")

    logger.info(f"Created {len(created)} folders for {project_dir.name} ({template})")
    return created


def generate_script_commands(template: str, base_path: str = "") -> Dict[str, List[str]]:
    """mkdir commands recreating ``template`` for Windows batch and POSIX shells"""
    batch_commands = []
    shell_commands = []

    for relative in _sanitized_paths(template):
        full_path = f"{base_path}/{relative}" if base_path else relative
        win_path = full_path.replace("/", "\\")
        batch_commands.append(f'mkdir "{win_path}"')
        shell_commands.append(f'mkdir -p "{full_path}"')

    return {"batch": batch_commands, "shell": shell_commands}


def render_script(kind: str, project_code: str, project_object: str, template: str) -> str:
    """Full script text for ``kind`` ``"batch"`` or ``"shell"``"""
    if kind not in ("batch", "shell"):
        raise ValueError(f"Unknown script kind: {kind}")

    base = project_folder_name(project_code, project_object)
    commands = generate_script_commands(template, base)[kind]

    if kind == "batch":
        lines = [
            "@echo off",
            f"echo Creazione struttura cartelle per progetto {project_code}",
            "echo.",
            *commands,
            "echo.",
            "echo Struttura cartelle creata con successo!",
            "pause",
        ]
        return "\r\n".join(lines)

    lines = [
        "#!/bin/bash",
        f'echo "Creazione struttura cartelle per progetto {project_code}"',
        "echo",
        *commands,
        "echo",
        'echo "Struttura cartelle creata con successo!"',
    ]
    return "\n".join(lines)
