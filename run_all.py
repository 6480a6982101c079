#!/usr/bin/env python3
"""
================================================================================
MASTER BUILD SCRIPT
================================================================================

Executes every tutorial in posts/ and renders the site into site/.

Usage:
    python run_all.py                  # run all posts, render everything
    python run_all.py --only power_by_simulation
    python run_all.py --render-only    # reuse existing results/
    python run_all.py --list

Output:
    Figures and tables: results/<post slug>/
    Rendered Markdown:  site/

Random Seeds:
    Every post fixes its own seed (BASE_SEED near the top of the script),
    so rerunning reproduces the same figures.

================================================================================
"""

import argparse
import sys
import time
from pathlib import Path

from statnotes.site import SiteConfig, build_site, discover_posts

# =============================================================================
# CONFIGURATION
# =============================================================================

REPO_ROOT = Path(__file__).parent.absolute()
POSTS_DIR = REPO_ROOT / "posts"
CONTENT_DIR = REPO_ROOT / "content"
RESULTS_DIR = REPO_ROOT / "results"
SITE_DIR = REPO_ROOT / "site"
CONFIG_PATH = REPO_ROOT / "site.yml"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def print_header(text: str, char: str = "=") -> None:
    """Print a formatted header."""
    width = 70
    print("\n" + char * width)
    print(text.center(width))
    print(char * width + "\n")


def list_posts(include_drafts: bool) -> None:
    for post in discover_posts(POSTS_DIR, include_drafts=include_drafts):
        draft = "  (draft)" if post.draft else ""
        print(f"  {post.date.isoformat()}  {post.slug:<32s} {post.title}{draft}")


def verify_outputs() -> None:
    """Print summary of all generated outputs."""
    print_header("OUTPUT SUMMARY", "-")

    for post_dir in sorted(p for p in RESULTS_DIR.glob("*") if p.is_dir()):
        files = sorted(f.name for f in post_dir.iterdir() if f.is_file())
        print(f"  {post_dir.name}/  ({len(files)} files)")
        for name in files:
            print(f"    • {name}")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the statnotes site.")
    parser.add_argument("--only", nargs="+", metavar="SLUG",
                        help="Run and render only these posts.")
    parser.add_argument("--render-only", action="store_true",
                        help="Skip execution and render from existing results.")
    parser.add_argument("--drafts", action="store_true",
                        help="Include posts marked draft: true.")
    parser.add_argument("--list", action="store_true",
                        help="List posts and exit.")
    return parser.parse_args(argv)


# =============================================================================
# MAIN EXECUTION
# =============================================================================

def main(argv=None) -> int:
    """
    Main entry point.

    Returns exit code: 0 for success, 1 for failure.
    """
    args = parse_args(argv)

    if args.list:
        list_posts(args.drafts)
        return 0

    config = SiteConfig.load(CONFIG_PATH)
    print_header(config.title.upper() + " BUILD")
    print(f"Repository: {REPO_ROOT}")
    print(f"Results will be saved to: {RESULTS_DIR}")
    print(f"Site will be written to: {SITE_DIR}")

    RESULTS_DIR.mkdir(exist_ok=True)
    total_start = time.time()

    report = build_site(
        posts_dir=POSTS_DIR,
        content_dir=CONTENT_DIR,
        results_dir=RESULTS_DIR,
        out_dir=SITE_DIR,
        config=config,
        execute=not args.render_only,
        only=args.only,
        include_drafts=args.drafts,
    )

    total_elapsed = time.time() - total_start
    print_header("BUILD COMPLETE")
    print(f"  Total time: {total_elapsed:.1f}s ({total_elapsed / 60:.1f} minutes)")
    if report.runs:
        n_ok = sum(r.ok for r in report.runs)
        print(f"  Posts: {n_ok} succeeded, {len(report.runs) - n_ok} failed")
    print(f"  Pages written: {len(report.written)}")

    if report.ok:
        verify_outputs()
        print("\n✓ Site built successfully.\n")
        return 0

    print(f"\n✗ Some posts failed: {report.failures}. Check output above for details.\n")
    return 1


if __name__ == "__main__":
    sys.exit(main())
