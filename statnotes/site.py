"""
Static Site Builder
===================

Turns the tutorial scripts in ``posts/`` into Markdown pages.

Each post is a jupytext percent-format script whose YAML header carries
the post metadata next to the usual ``jupyter`` block::

    # ---
    # title: Power analysis by simulation
    # date: 2024-03-02
    # tags: [design, simulation]
    # summary: One line for the index page.
    # outputs: [power_curves.png, summary.csv]
    # jupyter:
    #   jupytext: ...
    # ---

Building a post means (1) executing it as a plain script with a
non-interactive backend, so it writes figures and tables into its results
directory, and (2) converting the script to Markdown with jupytext and
attaching whatever it produced.
"""

from __future__ import annotations

import os
import re
import shutil
import subprocess
import sys
import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import jupytext
import yaml


# =============================================================================
# CONSTANTS
# =============================================================================

RESULTS_ENV = "STATNOTES_RESULTS_DIR"
FRONT_MATTER_DELIM = "# ---"
FIGURE_SUFFIXES = (".png", ".svg", ".jpg")
TABLE_SUFFIX = ".md"

PathLike = Union[str, Path]


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class SiteConfig:
    """Site-wide settings read from ``site.yml``."""
    title: str = "statnotes"
    author: str = ""
    description: str = ""
    base_url: str = "/"
    nav: List[Dict[str, str]] = field(default_factory=list)

    @classmethod
    def load(cls, path: Optional[PathLike]) -> "SiteConfig":
        """
        Read a YAML config file. A missing file gives the defaults.

        Raises
        ------
        ValueError
            If the file contains keys this config does not know.
        """
        if path is None or not Path(path).exists():
            return cls()
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        unknown = set(raw) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown keys in {path}: {sorted(unknown)}")
        return cls(**raw)


# =============================================================================
# Posts
# =============================================================================

@dataclass
class Post:
    """A tutorial script and its front matter."""
    slug: str
    path: Path
    title: str
    date: date
    tags: List[str] = field(default_factory=list)
    summary: str = ""
    outputs: List[str] = field(default_factory=list)
    draft: bool = False

    def results_dir(self, root: PathLike) -> Path:
        return Path(root) / self.slug

    def to_front_matter(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "date": self.date.isoformat(),
            "tags": list(self.tags),
            "summary": self.summary,
        }


@dataclass
class RunReport:
    """Outcome of executing one post."""
    slug: str
    ok: bool
    seconds: float
    returncode: int = 0
    missing: List[str] = field(default_factory=list)


def parse_front_matter(text: str) -> Dict[str, Any]:
    """
    Parse the commented YAML header at the top of a percent-format script.

    The ``jupyter`` block is dropped. Returns an empty dict if the script
    has no header.
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != FRONT_MATTER_DELIM:
        return {}

    body = []
    for line in lines[1:]:
        if line.strip() == FRONT_MATTER_DELIM:
            break
        if line.startswith("# "):
            body.append(line[2:])
        elif line.startswith("#"):
            body.append(line[1:])
        else:
            raise ValueError(f"Malformed front matter line: {line!r}")
    else:
        raise ValueError("Front matter is not closed with '# ---'")

    meta = yaml.safe_load("\n".join(body)) or {}
    meta.pop("jupyter", None)
    return meta


def _first_heading(text: str) -> Optional[str]:
    match = re.search(r"^# # (.+)$", text, flags=re.MULTILINE)
    return match.group(1).strip() if match else None


def _as_date(value: Any, path: Path) -> date:
    if isinstance(value, date):
        return value
    if value is None:
        raise ValueError(f"{path.name}: front matter has no 'date'")
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ValueError(f"{path.name}: invalid date {value!r}") from e


def load_post(path: PathLike) -> Post:
    """Read a post script's front matter into a :class:`Post`."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    meta = parse_front_matter(text)

    title = meta.get("title") or _first_heading(text) or path.stem.replace("_", " ").title()
    tags = meta.get("tags") or []
    if isinstance(tags, str):
        tags = [t.strip() for t in tags.split(",") if t.strip()]

    return Post(
        slug=meta.get("slug", path.stem),
        path=path,
        title=str(title),
        date=_as_date(meta.get("date"), path),
        tags=[str(t) for t in tags],
        summary=str(meta.get("summary", "")),
        outputs=[str(o) for o in meta.get("outputs", [])],
        draft=bool(meta.get("draft", False)),
    )


def discover_posts(posts_dir: PathLike, include_drafts: bool = False) -> List[Post]:
    """All posts in ``posts_dir``, newest first. Files starting with '_' are skipped."""
    posts = [
        load_post(p)
        for p in sorted(Path(posts_dir).glob("*.py"))
        if not p.name.startswith("_")
    ]
    if not include_drafts:
        posts = [p for p in posts if not p.draft]
    return sorted(posts, key=lambda p: (p.date, p.slug), reverse=True)


# =============================================================================
# Execution
# =============================================================================

def run_post(
    post: Post,
    results_root: PathLike,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> RunReport:
    """
    Execute a post as a script and check its declared outputs.

    The script runs in its own directory with ``MPLBACKEND=Agg`` and
    ``STATNOTES_RESULTS_DIR`` pointing at ``results_root/<slug>``.
    Output from the script is streamed, not captured.
    """
    out_dir = post.results_dir(results_root)
    out_dir.mkdir(parents=True, exist_ok=True)

    run_env = os.environ.copy()
    if env:
        run_env.update(env)
    run_env["MPLBACKEND"] = "Agg"
    run_env[RESULTS_ENV] = str(out_dir.absolute())

    start = time.time()
    try:
        subprocess.run(
            [sys.executable, str(post.path.absolute())],
            cwd=str(post.path.parent),
            env=run_env,
            check=True,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as e:
        return RunReport(post.slug, ok=False, seconds=time.time() - start, returncode=e.returncode)
    except subprocess.TimeoutExpired:
        return RunReport(post.slug, ok=False, seconds=time.time() - start, returncode=-1)

    missing = [o for o in post.outputs if not (out_dir / o).exists()]
    return RunReport(
        post.slug,
        ok=not missing,
        seconds=time.time() - start,
        missing=missing,
    )


# =============================================================================
# Rendering
# =============================================================================

def _front_matter_block(meta: Dict[str, Any]) -> str:
    return "---\n" + yaml.safe_dump(meta, sort_keys=False, allow_unicode=True) + "---\n\n"


def _is_header_cell(cell: Any) -> bool:
    return cell.cell_type == "raw" and cell.source.lstrip().startswith("---")


def script_to_markdown(path: PathLike) -> str:
    """Convert a percent-format script to Markdown without notebook metadata."""
    nb = jupytext.read(path)
    nb.cells = [c for c in nb.cells if not _is_header_cell(c)]
    kernelspec = nb.metadata.get("kernelspec")
    nb.metadata = {"jupytext": {"notebook_metadata_filter": "-all"}}
    if kernelspec:
        # Sets the language of the fenced code blocks
        nb.metadata["kernelspec"] = kernelspec
    return jupytext.writes(nb, fmt="md")


def render_post(post: Post, results_root: PathLike, out_dir: PathLike) -> Path:
    """
    Write ``out_dir/posts/<slug>.md``.

    Figures and Markdown tables found in the post's results directory are
    copied to ``out_dir/posts/<slug>/`` and appended to the page.
    """
    posts_out = Path(out_dir) / "posts"
    assets = posts_out / post.slug
    posts_out.mkdir(parents=True, exist_ok=True)

    body = script_to_markdown(post.path)

    results = post.results_dir(results_root)
    figures = sorted(p for p in results.glob("*") if p.suffix in FIGURE_SUFFIXES) if results.exists() else []
    tables = sorted(results.glob(f"*{TABLE_SUFFIX}")) if results.exists() else []

    sections = []
    if figures:
        assets.mkdir(parents=True, exist_ok=True)
        lines = ["## Figures", ""]
        for fig in figures:
            shutil.copy2(fig, assets / fig.name)
            lines.append(f"![{fig.stem.replace('_', ' ')}]({post.slug}/{fig.name})")
            lines.append("")
        sections.append("\n".join(lines))
    if tables:
        lines = ["## Tables", ""]
        for table in tables:
            lines.append(f"**{table.stem.replace('_', ' ')}**")
            lines.append("")
            lines.append(table.read_text(encoding="utf-8").strip())
            lines.append("")
        sections.append("\n".join(lines))

    page = _front_matter_block(post.to_front_matter()) + body.rstrip() + "\n"
    if sections:
        page += "\n" + "\n".join(sections)

    path = posts_out / f"{post.slug}.md"
    path.write_text(page, encoding="utf-8")
    return path


def render_page(path: PathLike, out_dir: PathLike) -> Path:
    """Copy a static Markdown page (about, research) into the site."""
    path = Path(path)
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / path.name
    shutil.copy2(path, target)
    return target


def slugify(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def _nav(config: SiteConfig, prefix: str = "") -> str:
    if not config.nav:
        return ""
    links = [f"[{item['title']}]({prefix}{item['path']})" for item in config.nav]
    return " | ".join(links) + "\n\n"


def build_index(posts: Sequence[Post], config: SiteConfig, out_dir: PathLike) -> Path:
    """Write ``index.md``: site header, navigation and posts by date."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    lines = [_front_matter_block({"title": config.title}).rstrip(), ""]
    lines.append(f"# {config.title}")
    lines.append("")
    if config.description:
        lines.extend([config.description, ""])
    nav = _nav(config)
    if nav:
        lines.append(nav.rstrip())
        lines.append("")

    lines.extend(["## Posts", ""])
    for post in posts:
        tags = ", ".join(f"[{t}](tags/{slugify(t)}.md)" for t in post.tags)
        entry = f"- **{post.date.isoformat()}** [{post.title}](posts/{post.slug}.md)"
        if tags:
            entry += f" ({tags})"
        lines.append(entry)
        if post.summary:
            lines.append(f"  {post.summary}")

    if config.author:
        lines.extend(["", f"*{config.author}*"])

    path = out_dir / "index.md"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def build_tag_pages(posts: Sequence[Post], out_dir: PathLike) -> List[Path]:
    """One page per tag under ``out_dir/tags/``."""
    by_tag: Dict[str, List[Post]] = {}
    for post in posts:
        for tag in post.tags:
            by_tag.setdefault(tag, []).append(post)

    tag_dir = Path(out_dir) / "tags"
    tag_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for tag, tagged in sorted(by_tag.items()):
        lines = [f"# Posts tagged '{tag}'", ""]
        for post in tagged:
            lines.append(f"- **{post.date.isoformat()}** [{post.title}](../posts/{post.slug}.md)")
        path = tag_dir / f"{slugify(tag)}.md"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        paths.append(path)
    return paths


# =============================================================================
# Orchestration
# =============================================================================

@dataclass
class BuildReport:
    """What :func:`build_site` ran and wrote."""
    runs: List[RunReport] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.runs)

    @property
    def failures(self) -> List[str]:
        return [r.slug for r in self.runs if not r.ok]


def build_site(
    posts_dir: PathLike,
    content_dir: Optional[PathLike],
    results_dir: PathLike,
    out_dir: PathLike,
    config: Optional[SiteConfig] = None,
    execute: bool = True,
    only: Optional[Sequence[str]] = None,
    include_drafts: bool = False,
    verbose: bool = True,
) -> BuildReport:
    """
    Execute (optionally) and render every post, then the pages and index.

    Parameters
    ----------
    posts_dir : path
        Directory of tutorial scripts.
    content_dir : path or None
        Directory of static Markdown pages.
    results_dir : path
        Root for per-post outputs.
    out_dir : path
        Where the rendered site is written.
    config : SiteConfig, optional
    execute : bool, default True
        Run each post before rendering. If False, existing results are used.
    only : sequence of str, optional
        Restrict execution and rendering to these slugs. The index still
        lists every post.
    """
    config = config or SiteConfig()
    report = BuildReport()

    posts = discover_posts(posts_dir, include_drafts=include_drafts)
    selected = [p for p in posts if only is None or p.slug in set(only)]
    if only is not None:
        unknown = set(only) - {p.slug for p in posts}
        if unknown:
            raise ValueError(f"Unknown post(s): {sorted(unknown)}")

    for i, post in enumerate(selected, 1):
        if execute:
            if verbose:
                print(f"[{i}/{len(selected)}] Running: {post.title} ({post.path.name})")
            run = run_post(post, results_dir)
            report.runs.append(run)
            if verbose:
                status = "✓" if run.ok else "✗"
                print(f"    {status} {run.seconds:.1f}s")
                if run.missing:
                    print(f"    ⚠ Missing outputs: {run.missing}")
        report.written.append(render_post(post, results_dir, out_dir))

    if content_dir is not None and Path(content_dir).exists():
        for page in sorted(Path(content_dir).glob("*.md")):
            report.written.append(render_page(page, out_dir))

    report.written.append(build_index(posts, config, out_dir))
    report.written.extend(build_tag_pages(posts, out_dir))
    return report


__all__ = [
    "SiteConfig",
    "Post",
    "RunReport",
    "BuildReport",
    "parse_front_matter",
    "load_post",
    "discover_posts",
    "run_post",
    "script_to_markdown",
    "render_post",
    "render_page",
    "build_index",
    "build_tag_pages",
    "build_site",
    "RESULTS_ENV",
]
