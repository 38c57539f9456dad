"""Starter files provisioned into new projects."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass


@dataclass(frozen=True)
class TemplateFile:
    """A root-level file created with a new project."""

    name: str
    content: str


def _package_name(project_name: str) -> str:
    return re.sub(r"\s+", "-", project_name.strip().lower())


def _readme(project_name: str, description: str, run_hint: str) -> str:
    return (
        f"# {project_name}\n\n{description}\n\n"
        f"## Getting Started\n\nRun `{run_hint}` to start the project.\n"
    )


def template_files(language: str, project_name: str, description: str = "") -> list[TemplateFile]:
    """Return the starter files for ``language`` (JavaScript when unknown)."""
    if language == "python":
        return [
            TemplateFile(
                "main.py", '# Welcome to your new Python project!\nprint("Hello, World!")\n'
            ),
            TemplateFile("requirements.txt", "# Add your Python dependencies here\n"),
            TemplateFile("README.md", _readme(project_name, description, "python main.py")),
        ]

    if language == "html":
        index_html = (
            "<!DOCTYPE html>\n"
            '<html lang="en">\n'
            "<head>\n"
            '    <meta charset="UTF-8">\n'
            '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
            f"    <title>{project_name}</title>\n"
            '    <link rel="stylesheet" href="style.css">\n'
            "</head>\n"
            "<body>\n"
            f"    <h1>Welcome to {project_name}!</h1>\n"
            f"    <p>{description}</p>\n"
            '    <script src="script.js"></script>\n'
            "</body>\n"
            "</html>\n"
        )
        return [
            TemplateFile("index.html", index_html),
            TemplateFile(
                "style.css",
                "body {\n    font-family: Arial, sans-serif;\n    margin: 40px;\n"
                "    line-height: 1.6;\n}\n\nh1 {\n    color: #333;\n}\n",
            ),
            TemplateFile(
                "script.js",
                '// Add your JavaScript code here\nconsole.log("Project loaded successfully!");\n',
            ),
        ]

    package_json = {
        "name": _package_name(project_name),
        "version": "1.0.0",
        "description": description,
        "main": "index.js",
        "scripts": {"start": "node index.js"},
    }
    return [
        TemplateFile(
            "index.js",
            '// Welcome to your new JavaScript project!\nconsole.log("Hello, World!");\n',
        ),
        TemplateFile("package.json", json.dumps(package_json, indent=2) + "\n"),
        TemplateFile("README.md", _readme(project_name, description, "npm start")),
    ]
