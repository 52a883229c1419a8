"""Artifact emission for pluginindex.

Writes the aggregated index to an output directory:
    - index.json: platform release plus every plugin entry
    - plugins/<name>.json: one document per plugin
    - index.html: static listing page

Rendering is a pure function of the AggregatedIndex. Plugins are always
emitted sorted by name, so two indexes with the same entries produce the
same bytes whatever order the entries were collected in.
"""

from __future__ import annotations

import html
import json
import shutil
from pathlib import Path
from typing import Any

from pluginindex.constants import (
    DEFAULT_PAGE_TITLE,
    DEFAULT_PLATFORM_KEY,
    GITHUB_WEB_BASE,
    INDEX_HTML_NAME,
    INDEX_JSON_NAME,
    JSON_INDENT,
    PLUGINS_DIR_NAME,
    PLUGINS_KEY,
)
from pluginindex.exceptions import EmitError
from pluginindex.logging import get_logger
from pluginindex.models import AggregatedIndex, RepositoryInfo
from pluginindex.utils import plugin_file_stem

logger = get_logger(__name__)

PAGE_STYLE = """
      body { font-family: -apple-system, "Segoe UI", Roboto, Arial, sans-serif; margin: 2rem; }
      table { border-collapse: collapse; margin: 1.5rem 0; }
      td, th { border: 1px solid #898ea4; text-align: left; padding: .5rem; }
      th { background-color: #f5f7ff; }
      tr:nth-child(even) { background-color: #f5f7ff; }
"""

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>{title}</title>
    <style>{style}    </style>
  </head>
  <body>
    <h1>{title}</h1>
    <table>
      <thead>
        <tr>
          <th>Plugin Name</th>
          <th>Author</th>
          <th>Repo</th>
          <th>Updated</th>
          <th>Version</th>
          <th>Description</th>
          <th>Download</th>
        </tr>
      </thead>
      <tbody>
{rows}      </tbody>
    </table>
    <p><strong>Listing API: <a href="{index_json}" target="_blank">{index_json}</a></strong></p>
  </body>
</html>
"""

ROW_TEMPLATE = """        <tr>
          <td>{name}</td>
          <td>{author}</td>
          <td><a href="{repo_url}" target="_blank">{repo_label}</a></td>
          <td>{updated}</td>
          <td>{version}</td>
          <td>{description}</td>
          <td>
            <a href="{download_url}">{download_label}</a>
            (<a href="./{plugins_dir}/{json_name}">json</a>)
          </td>
        </tr>
"""


def _sorted_plugins(index: AggregatedIndex) -> list[RepositoryInfo]:
    return [index.plugins[name] for name in sorted(index.plugins)]


def _dumps(document: Any) -> str:
    return json.dumps(document, indent=JSON_INDENT, ensure_ascii=False) + "\n"


def plugin_document(info: RepositoryInfo) -> dict[str, Any]:
    """Wire representation of one plugin entry."""
    return info.model_dump(mode="json", by_alias=True)


def render_plugin_json(info: RepositoryInfo) -> str:
    """Render the per-plugin document."""
    return _dumps(plugin_document(info))


def render_index_json(index: AggregatedIndex, platform_key: str = DEFAULT_PLATFORM_KEY) -> str:
    """Render the combined index document.

    Args:
        index: Aggregated index to render.
        platform_key: Key the platform release is stored under.

    Returns:
        JSON text with plugins in name order.
    """
    document = {
        platform_key: index.platform.model_dump(mode="json", by_alias=True),
        PLUGINS_KEY: {info.name: plugin_document(info) for info in _sorted_plugins(index)},
    }
    return _dumps(document)


def plugin_file_names(index: AggregatedIndex) -> dict[str, str]:
    """Map each plugin name to the file name of its per-plugin document.

    Names are assigned in name order. A name whose sanitized stem is already
    taken (compared case-insensitively) gets the first free `_<n>` suffix,
    so every plugin keeps its own document.
    """
    taken: set[str] = set()
    names: dict[str, str] = {}

    for info in _sorted_plugins(index):
        stem = plugin_file_stem(info.name)
        candidate = stem
        suffix = 2
        while candidate.casefold() in taken:
            candidate = f"{stem}_{suffix}"
            suffix += 1
        if candidate != stem:
            logger.warning(
                "Plugin file name collision",
                extra={"plugin": info.name, "file": f"{candidate}.json"},
            )
        taken.add(candidate.casefold())
        names[info.name] = f"{candidate}.json"

    return names


def render_html(
    index: AggregatedIndex,
    title: str = DEFAULT_PAGE_TITLE,
    file_names: dict[str, str] | None = None,
) -> str:
    """Render the listing page.

    Every plugin gets one table row (name order). All text is HTML-escaped.
    `file_names` comes from plugin_file_names() and is computed when omitted.
    """
    esc = html.escape
    rows: list[str] = []
    if file_names is None:
        file_names = plugin_file_names(index)

    for info in _sorted_plugins(index):
        latest = info.latest
        if latest is None:
            continue
        rows.append(
            ROW_TEMPLATE.format(
                name=esc(info.name),
                author=esc(info.author),
                repo_url=esc(info.repository_url),
                repo_label=esc(info.repository_url.removeprefix(GITHUB_WEB_BASE)),
                updated=latest.date.strftime("%Y-%m-%d"),
                version=esc(latest.version),
                description=esc(info.description),
                download_url=esc(latest.download_url),
                download_label=esc(f"{info.name}.{latest.version}.zip"),
                plugins_dir=PLUGINS_DIR_NAME,
                json_name=esc(file_names[info.name]),
            )
        )

    return PAGE_TEMPLATE.format(
        title=esc(title),
        style=PAGE_STYLE,
        rows="".join(rows),
        index_json=INDEX_JSON_NAME,
    )


def prepare_output_directory(
    output_dir: Path,
    work_dir: Path | None = None,
    *,
    clean: bool = True,
) -> None:
    """Create the output (and optional work) directory.

    With `clean`, an existing output directory is removed first so that
    plugins dropped from the index do not leave stale documents behind.

    Raises:
        EmitError: If asked to clean the current directory or one of its
            parents, or if the directories cannot be created.
    """
    resolved = output_dir.resolve()
    cwd = Path.cwd().resolve()

    try:
        if clean and resolved.exists():
            if resolved == cwd or resolved in cwd.parents:
                raise EmitError(
                    "Refusing to clean the working directory or one of its parents",
                    {"output_dir": str(output_dir)},
                )
            shutil.rmtree(resolved)
            logger.debug("Removed previous output", extra={"output_dir": str(output_dir)})

        output_dir.mkdir(parents=True, exist_ok=True)
        if work_dir is not None:
            work_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise EmitError(
            f"Cannot prepare output directory {output_dir}",
            {"error": str(e)},
        ) from e


class ArtifactEmitter:
    """Writes index.json, plugins/<name>.json and index.html."""

    def __init__(
        self,
        platform_key: str = DEFAULT_PLATFORM_KEY,
        title: str = DEFAULT_PAGE_TITLE,
    ) -> None:
        self._platform_key = platform_key
        self._title = title

    def emit(self, index: AggregatedIndex, output_dir: Path) -> list[Path]:
        """Write all artifacts for `index` into `output_dir`.

        Args:
            index: Aggregated index to write.
            output_dir: Target directory (created if missing).

        Returns:
            Paths of all written files.

        Raises:
            EmitError: If a file cannot be written.
        """
        plugins_dir = output_dir / PLUGINS_DIR_NAME
        written: list[Path] = []

        try:
            plugins_dir.mkdir(parents=True, exist_ok=True)

            index_path = output_dir / INDEX_JSON_NAME
            index_path.write_text(render_index_json(index, self._platform_key), encoding="utf-8")
            written.append(index_path)

            file_names = plugin_file_names(index)
            for info in _sorted_plugins(index):
                plugin_path = plugins_dir / file_names[info.name]
                plugin_path.write_text(render_plugin_json(info), encoding="utf-8")
                written.append(plugin_path)

            html_path = output_dir / INDEX_HTML_NAME
            html_path.write_text(render_html(index, self._title, file_names), encoding="utf-8")
            written.append(html_path)
        except OSError as e:
            raise EmitError(
                f"Cannot write artifacts to {output_dir}",
                {"error": str(e)},
            ) from e

        logger.info(
            "Artifacts written",
            extra={"output_dir": str(output_dir), "plugins": len(index.plugins)},
        )
        return written
