"""Tests for the static site builder."""

from datetime import date
from pathlib import Path

import pytest

from statnotes.site import (
    RESULTS_ENV,
    BuildReport,
    RunReport,
    SiteConfig,
    build_index,
    build_site,
    build_tag_pages,
    discover_posts,
    load_post,
    parse_front_matter,
    render_page,
    render_post,
    run_post,
    script_to_markdown,
    slugify,
)


# =============================================================================
# Front matter and discovery
# =============================================================================

def test_parse_front_matter_drops_jupyter_block(post_factory):
    meta = parse_front_matter(post_factory().read_text())
    assert meta["title"] == "An example post"
    assert meta["date"] == date(2024, 1, 15)
    assert meta["tags"] == ["simulation", "power"]
    assert "jupyter" not in meta


def test_parse_front_matter_without_header():
    assert parse_front_matter("import numpy as np\n") == {}
    assert parse_front_matter("") == {}


def test_parse_front_matter_unclosed():
    with pytest.raises(ValueError, match="not closed"):
        parse_front_matter("# ---\n# title: x\n")


def test_parse_front_matter_malformed_line():
    with pytest.raises(ValueError, match="Malformed"):
        parse_front_matter("# ---\ntitle: x\n# ---\n")


def test_load_post(post_factory):
    post = load_post(post_factory(slug="power_intro"))
    assert post.slug == "power_intro"
    assert post.title == "An example post"
    assert post.date == date(2024, 1, 15)
    assert post.outputs == ["table.md"]
    assert post.draft is False
    assert post.to_front_matter() == {
        "title": "An example post",
        "date": "2024-01-15",
        "tags": ["simulation", "power"],
        "summary": "One line summary.",
    }


def test_load_post_title_falls_back_to_heading(post_factory):
    post = load_post(post_factory(title=""))
    assert post.title == "A heading"


def test_load_post_requires_date(post_factory):
    with pytest.raises(ValueError, match="no 'date'"):
        load_post(post_factory(date=""))


def test_load_post_rejects_bad_date(post_factory):
    with pytest.raises(ValueError, match="invalid date"):
        load_post(post_factory(date="March 2024"))


def test_load_post_comma_separated_tags(tmp_path):
    path = tmp_path / "tagged.py"
    path.write_text("# ---\n# date: 2024-02-01\n# tags: bayes, priors\n# ---\nx = 1\n")
    post = load_post(path)
    assert post.tags == ["bayes", "priors"]
    assert post.title == "Tagged"


def test_discover_posts_order_and_drafts(tmp_path, post_factory):
    post_factory(slug="older", date="2024-01-01")
    post_factory(slug="newer", date="2024-06-01")
    post_factory(slug="unfinished", date="2024-09-01", extra={"draft": "true"})
    (tmp_path / "posts" / "_helpers.py").write_text("x = 1\n")

    posts = discover_posts(tmp_path / "posts")
    assert [p.slug for p in posts] == ["newer", "older"]

    with_drafts = discover_posts(tmp_path / "posts", include_drafts=True)
    assert [p.slug for p in with_drafts] == ["unfinished", "newer", "older"]
    assert with_drafts[0].draft is True


# =============================================================================
# Configuration
# =============================================================================

def test_site_config_defaults(tmp_path):
    config = SiteConfig.load(tmp_path / "missing.yml")
    assert config == SiteConfig()
    assert SiteConfig.load(None).title == "statnotes"


def test_site_config_from_yaml(tmp_path):
    path = tmp_path / "site.yml"
    path.write_text(
        "title: My notes\nauthor: A. Author\nnav:\n  - title: About\n    path: about.md\n"
    )
    config = SiteConfig.load(path)
    assert config.title == "My notes"
    assert config.nav == [{"title": "About", "path": "about.md"}]


def test_site_config_unknown_keys(tmp_path):
    path = tmp_path / "site.yml"
    path.write_text("title: x\ntheme: dark\n")
    with pytest.raises(ValueError, match="theme"):
        SiteConfig.load(path)


# =============================================================================
# Execution
# =============================================================================

def test_run_post_writes_declared_outputs(tmp_path, post_factory):
    post = load_post(post_factory())
    report = run_post(post, tmp_path / "results")
    assert isinstance(report, RunReport)
    assert report.ok
    assert report.missing == []
    assert (tmp_path / "results" / "example" / "table.md").exists()


def test_run_post_reports_missing_outputs(tmp_path, post_factory):
    post = load_post(post_factory(outputs="table.md, figure.png"))
    report = run_post(post, tmp_path / "results")
    assert not report.ok
    assert report.returncode == 0
    assert report.missing == ["figure.png"]


def test_run_post_sets_environment(tmp_path, post_factory):
    body = (
        "\n# %%\n"
        "import os\n"
        "from pathlib import Path\n"
        f"out = Path(os.environ['{RESULTS_ENV}'])\n"
        "(out / 'env.txt').write_text(os.environ['MPLBACKEND'] + ' ' + os.environ['EXTRA'])\n"
    )
    post = load_post(post_factory(outputs="env.txt", body=body))
    report = run_post(post, tmp_path / "results", env={"EXTRA": "yes"})
    assert report.ok
    assert (tmp_path / "results" / "example" / "env.txt").read_text().lower() == "agg yes"


def test_run_post_failing_script(tmp_path, post_factory):
    post = load_post(post_factory(body="\n# %%\nraise SystemExit(3)\n"))
    report = run_post(post, tmp_path / "results")
    assert not report.ok
    assert report.returncode == 3


# =============================================================================
# Rendering
# =============================================================================

def test_script_to_markdown_strips_metadata(post_factory):
    text = script_to_markdown(post_factory())
    assert "# A heading" in text
    assert "```" in text
    assert "import os" in text
    assert "jupyter" not in text
    assert "title: An example post" not in text


def test_render_post_attaches_results(tmp_path, post_factory):
    post = load_post(post_factory())
    results = tmp_path / "results" / "example"
    results.mkdir(parents=True)
    (results / "table.md").write_text("| a |\n|---|\n| 1 |\n")
    (results / "power_curve.png").write_bytes(b"not really a png")
    (results / "summary.csv").write_text("a\n1\n")

    path = render_post(post, tmp_path / "results", tmp_path / "site")
    assert path == tmp_path / "site" / "posts" / "example.md"

    page = path.read_text()
    assert page.startswith("---\ntitle: An example post\n")
    assert "## Figures" in page
    assert "![power curve](example/power_curve.png)" in page
    assert "## Tables" in page
    assert "| a |" in page
    assert "summary.csv" not in page
    assert (tmp_path / "site" / "posts" / "example" / "power_curve.png").exists()


def test_render_post_without_results(tmp_path, post_factory):
    post = load_post(post_factory())
    page = render_post(post, tmp_path / "results", tmp_path / "site").read_text()
    assert "## Figures" not in page
    assert "## Tables" not in page


def test_render_page(tmp_path):
    src = tmp_path / "about.md"
    src.write_text("# About\n")
    target = render_page(src, tmp_path / "site")
    assert target.read_text() == "# About\n"


def test_slugify():
    assert slugify("Causal Inference") == "causal-inference"
    assert slugify("  RDD / IV ") == "rdd-iv"


def test_build_index_and_tags(tmp_path, post_factory):
    post_factory(slug="first", title="First", date="2024-01-01", tags="design")
    post_factory(slug="second", title="Second", date="2024-02-01", tags="design, bayes")
    posts = discover_posts(tmp_path / "posts")
    config = SiteConfig(
        title="Notes", description="About statistics.", author="Someone",
        nav=[{"title": "About", "path": "about.md"}],
    )

    index = build_index(posts, config, tmp_path / "site").read_text()
    assert "# Notes" in index
    assert "[About](about.md)" in index
    assert index.index("[Second]") < index.index("[First]")
    assert "[design](tags/design.md)" in index
    assert "*Someone*" in index

    pages = build_tag_pages(posts, tmp_path / "site")
    assert [p.name for p in pages] == ["bayes.md", "design.md"]
    design = (tmp_path / "site" / "tags" / "design.md").read_text()
    assert "[First](../posts/first.md)" in design
    assert "[Second](../posts/second.md)" in design


# =============================================================================
# Orchestration
# =============================================================================

def test_build_site_render_only(tmp_path, post_factory):
    post_factory(slug="one", date="2024-01-01")
    post_factory(slug="two", date="2024-02-01")
    content = tmp_path / "content"
    content.mkdir()
    (content / "about.md").write_text("# About\n")

    report = build_site(
        tmp_path / "posts", content, tmp_path / "results", tmp_path / "site",
        execute=False, verbose=False,
    )
    assert isinstance(report, BuildReport)
    assert report.runs == []
    assert report.ok
    names = {p.name for p in report.written}
    assert {"one.md", "two.md", "about.md", "index.md", "simulation.md", "power.md"} <= names


def test_build_site_only_and_execute(tmp_path, post_factory, capsys):
    post_factory(slug="one", date="2024-01-01")
    post_factory(slug="two", date="2024-02-01", body="\n# %%\nraise SystemExit(1)\n")

    report = build_site(
        tmp_path / "posts", None, tmp_path / "results", tmp_path / "site", only=["one"],
    )
    assert report.ok
    assert [r.slug for r in report.runs] == ["one"]
    assert "Running" in capsys.readouterr().out
    # Index lists every post even when only one was built
    assert "[An example post](posts/two.md)" in (tmp_path / "site" / "index.md").read_text()

    report = build_site(tmp_path / "posts", None, tmp_path / "results", tmp_path / "site", verbose=False)
    assert not report.ok
    assert report.failures == ["two"]


def test_build_site_unknown_slug(tmp_path, post_factory):
    post_factory()
    with pytest.raises(ValueError, match="Unknown post"):
        build_site(tmp_path / "posts", None, tmp_path / "results", tmp_path / "site", only=["nope"])


def test_power_post_reports_failed_fits():
    path = Path(__file__).resolve().parents[1] / "posts" / "power_by_simulation.py"
    post = load_post(path)
    assert "binary_summary.md" in post.outputs
    source = path.read_text()
    assert 'model="logit"' in source
    assert '"n_failed"' in source
