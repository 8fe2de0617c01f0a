"""Render a ValidationReport to a standalone HTML page."""

from __future__ import annotations

from html import escape
from pathlib import Path
from string import Template

from depextract.model import Dependency, ModIdentity, SatisfactionResult, Severity
from depextract.validator import ModResults, ValidationReport
from depextract.versioning import ArtifactVersion

_TEMPLATE_PATH = Path(__file__).with_name("template.html")
_CELL = '<td class="mod_table">{}</td>'


def describe_range(dependency: Dependency) -> str:
    """Display text for a dependency's requested range."""
    if dependency.version_range is None:
        return "<invalid>"
    if dependency.version_range.is_unbounded:
        return "<any>"
    return str(dependency.version_range)


def _bool(value: bool) -> str:
    text = "true" if value else "false"
    return f'<span class="{text}">{text}</span>'


def _severity(severity: Severity) -> str:
    css = severity.name.lower() if severity in (Severity.DISCOURAGED, Severity.INCOMPATIBLE) else "true"
    return f'<span class="{css}">{severity.value}</span>'


def _file_source(identity: ModIdentity) -> str:
    if identity.source_path is None:
        return ""
    if identity.embedded:
        content = f"JiJ in <b>{escape(identity.source_path.name)}</b>"
    else:
        content = "Mods folder"
    return f'<abbr title="{escape(str(identity.source_path))}">{content}</abbr>'


def _version(version: ArtifactVersion) -> str:
    if not version.is_valid:
        return f'<span class="false">{escape(str(version))}</span>'
    return escape(str(version))


def _result_cells(result: SatisfactionResult) -> list[str]:
    if result.is_placeholder:
        return [_CELL.format("")] * 7

    dep = result.dependency
    if result.installed_version is None:
        installed_version = "-"
    else:
        installed_version = _version(result.installed_version)
    return [
        _CELL.format(escape(dep.mod_id)),
        _CELL.format(escape(describe_range(dep))),
        _CELL.format(installed_version),
        _CELL.format(_severity(dep.severity)),
        _CELL.format(_bool(result.installed)),
        _CELL.format(_bool(result.in_range)),
        _CELL.format(_bool(result.satisfied)),
    ]


def _mod_rows(row: ModResults) -> list[str]:
    identity = row.identity
    span = f'<td class="mod_table" rowspan="{len(row.results)}">{{}}</td>'
    head = [
        span.format(f"{escape(identity.display_name)}<br>({escape(identity.mod_id)})"),
        span.format(identity.kind.value),
        span.format(_version(identity.version)),
        span.format(_file_source(identity)),
    ]

    lines = []
    for i, result in enumerate(row.results):
        cells = (head if i == 0 else []) + _result_cells(result)
        lines.append("<tr>" + "".join(cells) + "</tr>")
    return lines


def _duplicates_section(report: ValidationReport) -> str:
    if not report.duplicates:
        return ""

    lines = [
        "<h2>Duplicated mods</h2>",
        "This information may not be fully accurate and these duplicates may not "
        "actually cause issues<br>",
        '<table class="mod_table">',
        '<thead><tr><th class="mod_table">Mod ID</th><th class="mod_table">File name</th>'
        '<th class="mod_table">File source</th><th class="mod_table">Mod version</th></tr></thead>',
        "<tbody>",
    ]
    for mod_id, members in report.duplicates.items():
        for i, identity in enumerate(members):
            cells = []
            if i == 0:
                cells.append(f'<td class="mod_table" rowspan="{len(members)}">{escape(mod_id)}</td>')
            cells.append(_CELL.format(escape(identity.file_name)))
            cells.append(_CELL.format(_file_source(identity)))
            cells.append(_CELL.format(_version(identity.version)))
            lines.append("<tr>" + "".join(cells) + "</tr>")
    lines.extend(["</tbody>", "</table>", "<br><br>"])
    return "\n".join(lines)


def _summary(
    report: ValidationReport,
    *,
    minecraft_version: str,
    neoforge_version: str,
    mod_count: int,
    jar_count: int,
) -> str:
    lines = [
        f"Minecraft version: {escape(minecraft_version)}<br>",
        f"NeoForge version: {escape(neoforge_version)}<br>",
        f"Found {mod_count} mods in {jar_count} mod JARs<br>",
    ]
    if report.only_satisfied:
        lines.append(
            f"Only showing mods with satisfied dependencies ({len(report.rows)} out of {mod_count} mods)<br>"
        )
    elif report.only_unsatisfied:
        lines.append(
            f"Only showing mods with unsatisfied dependencies ({len(report.rows)} out of {mod_count} mods)<br>"
        )
    lines.append(f"All dependencies satisfied: {_bool(report.all_satisfied)}<br><br>")
    return "\n".join(lines)


def render_report(
    report: ValidationReport,
    output_path: Path,
    *,
    minecraft_version: str,
    neoforge_version: str,
    mod_count: int,
    jar_count: int,
    dark_mode: bool = False,
) -> None:
    """Write the dependency report for *report* to *output_path*."""
    template = Template(_TEMPLATE_PATH.read_text(encoding="utf-8"))
    rows = [line for row in report.rows for line in _mod_rows(row)]
    html = template.safe_substitute(
        BODY_CLASS="dark" if dark_mode else "",
        BORDER_COLOR="#c9d1d9" if dark_mode else "black",
        HEADER_BACKGROUND="#0d1117" if dark_mode else "white",
        SUMMARY=_summary(
            report,
            minecraft_version=minecraft_version,
            neoforge_version=neoforge_version,
            mod_count=mod_count,
            jar_count=jar_count,
        ),
        DUPLICATES=_duplicates_section(report),
        DEPENDENCY_ROWS="\n".join(rows),
    )
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html, encoding="utf-8")
