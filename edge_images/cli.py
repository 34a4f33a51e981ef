#!/usr/bin/env python3
"""
edge-images command line.

  rewrite   Rewrite <img>/<figure> markup in HTML files in place
            (Backup/ copy next to each edited file, atomic writes, edit log).
  url       Print the transformed URL for a path.
  srcset    Print the srcset for a URL with known dimensions.

Provider settings come from --config (JSON), then EDGE_IMAGES_* environment
variables, then the flags below, later ones winning.
"""

import argparse
import concurrent.futures as cf
import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .config import Settings, load_sizes_map
from .errors import ConfigurationError
from .pipeline import Pipeline
from .rewriter import RewriteContext

logger = logging.getLogger(__name__)

BACKUP_DIRNAME = "Backup"
EDIT_LOG_FILENAME = "edge_images_edits.log"

# Transient and editor artefacts to ignore
TRANSIENT_SUFFIXES = {".swp", ".tmp", ".bak"}


def is_transient(p: Path) -> bool:
    n = p.name
    return (
        n.startswith(".#")         # Emacs lockfiles
        or n.endswith("~")
        or n == ".DS_Store"
        or p.suffix.lower() in TRANSIENT_SUFFIXES
    )


def write_text_atomic(target: Path, text: str) -> None:
    tmp = target.with_suffix(target.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8", newline="") as f:
        f.write(text)
    os.replace(tmp, target)


def ensure_backup(src_file: Path, backup_dir: Path) -> None:
    """Copy src_file into backup_dir once; an existing backup is the pristine one."""
    backup_dir.mkdir(parents=True, exist_ok=True)
    dst = backup_dir / src_file.name
    if not dst.exists():
        shutil.copy2(src_file, dst)


def parse_pairs(pairs: Sequence[str]) -> Dict[str, str]:
    """key=value arguments from the command line."""
    out: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise argparse.ArgumentTypeError(f"expected key=value, got {pair!r}")
        out[key.strip()] = value.strip()
    return out


def collect_targets(root: Path, pattern: str) -> List[Path]:
    return sorted(
        p for p in root.rglob(pattern)
        if p.is_file() and not is_transient(p) and BACKUP_DIRNAME not in p.relative_to(root).parts
    )


# ---------- Settings ----------

def load_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_file(args.config) if getattr(args, "config", None) else Settings()
    env, defaults = Settings.from_env(), Settings()
    # environment overrides only what it sets
    overrides = {
        name: getattr(env, name)
        for name in Settings.__dataclass_fields__
        if getattr(env, name) != getattr(defaults, name)
    }
    if getattr(args, "provider", None):
        overrides["provider"] = args.provider
    if getattr(args, "domain", None):
        overrides["domain"] = args.domain
    if getattr(args, "subdomain", None):
        overrides["subdomain"] = args.subdomain
    if getattr(args, "no_picture_wrap", False):
        overrides["wrap_in_picture"] = False
    if getattr(args, "sizes", None):
        overrides["sizes_map"] = load_sizes_map(Path(args.sizes))
    return settings.replace(**overrides) if overrides else settings


# ---------- Commands ----------

def rewrite_one(pipeline: Pipeline, root: Path, file_path: Path, dry_run: bool,
                backup: bool) -> Tuple[str, Optional[str]]:
    """Rewrite one file; returns (status line, edit log line or None)."""
    rel = file_path.relative_to(root)
    try:
        try:
            text = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            text = file_path.read_text(encoding="latin-1")
    except FileNotFoundError:
        return f"SKIP {rel}  vanished during scan", None
    except OSError as e:
        return f"SKIP {rel}  read error: {e}", None

    updated = pipeline.rewrite(text, RewriteContext.BLOCK_CONTENT)
    if updated == text:
        return f"SKIP {rel}  no image changes", None

    if not dry_run:
        if backup:
            ensure_backup(file_path, file_path.parent / BACKUP_DIRNAME)
        write_text_atomic(file_path, updated)
    return f"{'DRY  ' if dry_run else 'EDIT '}{rel}  rewritten", f"{rel} :: images rewritten\n"


def cmd_rewrite(args: argparse.Namespace) -> int:
    root = Path(args.root).resolve()
    if not root.is_dir():
        print(f"root not found: {root}", file=sys.stderr)
        return 1

    pipeline = Pipeline(load_settings(args))
    targets = collect_targets(root, args.glob)
    print(f"Found {len(targets)} file(s) under {root}")
    print(f"Provider={pipeline.settings.provider}, threads={args.threads}, "
          f"dry-run={'on' if args.dry_run else 'off'}, backups={'off' if args.no_backup else 'on'}")
    if not targets:
        return 0

    log_lines: List[str] = []
    with cf.ThreadPoolExecutor(max_workers=args.threads) as ex:
        futures = [
            ex.submit(rewrite_one, pipeline, root, p, args.dry_run, not args.no_backup)
            for p in targets
        ]
        for fut in cf.as_completed(futures):
            status, log_line = fut.result()
            print(status)
            if log_line:
                log_lines.append(log_line)

    if log_lines and not args.dry_run:
        log_path = root / EDIT_LOG_FILENAME
        with open(log_path, "a", encoding="utf-8") as log:
            log.writelines(sorted(log_lines))
        print(f"Edit log: {log_path}")
    return 0


def cmd_url(args: argparse.Namespace) -> int:
    pipeline = Pipeline(load_settings(args))
    print(pipeline.build_transformed_url(args.path, parse_pairs(args.pairs)))
    return 0


def cmd_srcset(args: argparse.Namespace) -> int:
    pipeline = Pipeline(load_settings(args))
    srcset = pipeline.build_srcset(args.url, (args.width, args.height), "", parse_pairs(args.pairs))
    if not srcset:
        print(f"no srcset for {args.url}", file=sys.stderr)
        return 1
    print(srcset)
    return 0


# ---------- Parser ----------

def add_provider_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="JSON settings file")
    parser.add_argument("--provider", default=None,
                        help="cloudflare, accelerated_domains, bunny or imgix")
    parser.add_argument("--domain", default=None, help="Site origin used for path-segment providers")
    parser.add_argument("--subdomain", default=None, help="Account subdomain for bunny/imgix")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="edge-images",
                                     description="Serve images through an edge transformation endpoint.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("rewrite", help="Rewrite image markup in HTML files in place")
    add_provider_options(p)
    p.add_argument("--root", default=".", help="Directory to scan")
    p.add_argument("--glob", default="*.html", help="File pattern, matched recursively")
    p.add_argument("--dry-run", action="store_true", help="Show planned edits only")
    p.add_argument("--threads", type=int, default=os.cpu_count() or 4, help="Worker threads")
    p.add_argument("--no-backup", action="store_true", help="Do not copy originals to Backup/")
    p.add_argument("--sizes", default=None, help="JSON map of filename glob -> sizes attribute")
    p.add_argument("--no-picture-wrap", action="store_true", help="Rewrite <img> in place, no container")
    p.set_defaults(func=cmd_rewrite)

    p = sub.add_parser("url", help="Print a transformed URL")
    add_provider_options(p)
    p.add_argument("path")
    p.add_argument("pairs", nargs="*", metavar="key=value")
    p.set_defaults(func=cmd_url)

    p = sub.add_parser("srcset", help="Print a srcset")
    add_provider_options(p)
    p.add_argument("url")
    p.add_argument("--width", type=int, required=True)
    p.add_argument("--height", type=int, required=True)
    p.add_argument("pairs", nargs="*", metavar="key=value")
    p.set_defaults(func=cmd_srcset)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except ConfigurationError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 2
    except argparse.ArgumentTypeError as e:
        print(str(e), file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
