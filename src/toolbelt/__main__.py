"""
toolbelt - command-line client for the commerce platform.

Usage:
    python -m toolbelt rewriter import <csv> [--reset]   # Import redirects
    python -m toolbelt rewriter delete <csv>             # Delete redirects
    python -m toolbelt rewriter pending                  # Show unfinished jobs
    python -m toolbelt config show                       # Show session settings
    python -m toolbelt config set <key> <value>          # Change a setting
"""

import argparse
import io
import logging
import os
import sys

EXIT_INTERRUPTED = 130


def _fix_console_encoding():
    """Ensure stdout/stderr can handle Unicode on Windows."""
    if os.name == "nt" and hasattr(sys.stdout, "buffer"):
        sys.stdout = io.TextIOWrapper(
            sys.stdout.buffer, encoding="utf-8", errors="replace"
        )
        sys.stderr = io.TextIOWrapper(
            sys.stderr.buffer, encoding="utf-8", errors="replace"
        )


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s" if not verbose
        else "%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    # urllib3 retry chatter is only useful when debugging
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _load_settings():
    from toolbelt.config import Settings

    return Settings.load().apply_env()


def _progress(label):
    def progress(done, total):
        end = "\n" if done >= total else ""
        print(f"\r{label} [{done}/{total}]", end=end, flush=True)

    return progress


def _fail(message, code=1):
    print(f"ERROR: {message}", file=sys.stderr)
    sys.exit(code)


def import_redirects(args):
    """Import redirects from a CSV file."""
    from toolbelt.core.exceptions import ImportInterrupted, ToolbeltError
    from toolbelt.rewriter.client import create_client
    from toolbelt.rewriter.importer import RedirectImporter

    settings = _load_settings()
    try:
        client = create_client(settings)
    except ToolbeltError as e:
        _fail(e)

    print(f"Account: {settings.account}  Workspace: {settings.workspace}")
    with client:
        importer = RedirectImporter(
            client, settings, progress=_progress("Importing routes...")
        )
        try:
            imported = importer.run(args.csv, reset=args.reset)
        except ImportInterrupted as e:
            print()
            print(f"Stopped. Progress saved ({e.counter} batch(es) committed).")
            print("Run the same command again to resume.")
            sys.exit(EXIT_INTERRUPTED)
        except ToolbeltError as e:
            job = importer.job
            if job and job.counter:
                print(f"Progress saved ({job.counter}/{job.total_batches} batch(es)). "
                      "Run the same command again to resume.")
            _fail(e)

    print(f"Finished! {len(imported)} redirect(s) imported.")


def delete_redirects(args):
    """Delete the redirects listed in a CSV file."""
    from toolbelt.core.exceptions import ImportInterrupted, ToolbeltError
    from toolbelt.rewriter.client import create_client
    from toolbelt.rewriter.delete import delete_redirects as run_delete

    settings = _load_settings()
    try:
        client = create_client(settings)
    except ToolbeltError as e:
        _fail(e)

    with client:
        try:
            deleted = run_delete(
                client, args.csv, settings, progress=_progress("Deleting routes...")
            )
        except ImportInterrupted as e:
            print()
            print(f"Stopped. Progress saved ({e.counter} batch(es) committed).")
            sys.exit(EXIT_INTERRUPTED)
        except ToolbeltError as e:
            _fail(e)

    print(f"Finished! {len(deleted)} redirect(s) deleted.")


def show_pending(args):
    """List imports/deletes that stopped before finishing."""
    from toolbelt.core.metainfo import load_metainfo, metainfo_path

    metainfo = load_metainfo()
    print(f"Metainfo: {metainfo_path()}")
    if not any(metainfo.values()):
        print("No unfinished jobs.")
        return

    for namespace, entries in sorted(metainfo.items()):
        if not entries:
            continue
        print(f"--- {namespace} ---")
        for fingerprint, entry in entries.items():
            print(f"  {fingerprint}: {entry.get('counter', 0)} batch(es) committed")


def show_config(args):
    from dataclasses import asdict
    from toolbelt.config import settings_path

    settings = _load_settings()
    print(f"Settings: {settings_path()}")
    for key, value in asdict(settings).items():
        if key == "token" and value:
            value = value[:6] + "..."
        print(f"  {key}: {value}")


def set_config(args):
    from toolbelt.config import Settings

    settings = Settings.load()
    try:
        settings.set_value(args.key, args.value)
    except KeyError:
        _fail(f"Unknown setting: {args.key}")
    except ValueError:
        _fail(f"Invalid value for {args.key}: {args.value}")
    settings.save()
    print(f"{args.key} updated.")


def main():
    _fix_console_encoding()

    parser = argparse.ArgumentParser(
        prog="toolbelt",
        description="Command-line client for the commerce platform",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    subparsers = parser.add_subparsers(dest="command")

    # rewriter
    rewriter_parser = subparsers.add_parser("rewriter", help="Manage URL redirects")
    rewriter_sub = rewriter_parser.add_subparsers(dest="action")

    import_parser = rewriter_sub.add_parser("import", help="Import redirects from a CSV file")
    import_parser.add_argument("csv", help="CSV with columns from;to;endDate;type")
    import_parser.add_argument(
        "-r", "--reset", action="store_true",
        help="Delete indexed redirects that are not in the file",
    )

    delete_parser = rewriter_sub.add_parser("delete", help="Delete redirects listed in a CSV file")
    delete_parser.add_argument("csv", help="CSV with a single 'from' column")

    rewriter_sub.add_parser("pending", help="Show unfinished imports and deletes")

    # config
    config_parser = subparsers.add_parser("config", help="Show or change settings")
    config_sub = config_parser.add_subparsers(dest="action")
    config_sub.add_parser("show", help="Show current settings")
    set_parser = config_sub.add_parser("set", help="Change a setting")
    set_parser.add_argument("key")
    set_parser.add_argument("value")

    args = parser.parse_args()
    _setup_logging(args.verbose or _load_settings().verbose)

    action = getattr(args, "action", None)
    try:
        if args.command == "rewriter" and action == "import":
            import_redirects(args)
        elif args.command == "rewriter" and action == "delete":
            delete_redirects(args)
        elif args.command == "rewriter" and action == "pending":
            show_pending(args)
        elif args.command == "config" and action == "set":
            set_config(args)
        elif args.command == "config":
            show_config(args)
        elif args.command == "rewriter":
            rewriter_parser.print_help()
        else:
            parser.print_help()
    except KeyboardInterrupt:
        print("\nAborted.")
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
