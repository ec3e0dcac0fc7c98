"""CLI entrypoint for MedPost application."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import fire  # type: ignore[import-untyped]

from medpost.app import Application
from medpost.config import ConfigError, load_config
from medpost.logging_setup import configure_logging
from medpost.maintenance.reconcile_orphans import ReconcileOptions, run_reconcile


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for CLI."""
    configure_logging(log_level=level)


class MedPost:
    """MedPost CLI - doctor post submission service."""

    def run(self, config: str, log_level: str = "INFO") -> None:
        """Serve the MedPost API.

        Args:
            config: Path to YAML config file
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        setup_logging(log_level)

        app = Application(Path(config))

        try:
            asyncio.run(app.run())
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)
        except KeyboardInterrupt:
            pass  # Handled by signal handlers

    def validate(self, config: str) -> None:
        """Validate config file without running.

        Args:
            config: Path to YAML config file
        """
        config_path = Path(config)

        try:
            cfg = load_config(config_path)
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)

        print(f"✓ Config valid: {config_path}")
        print(f"  Storage backend: {cfg.storage.backend}")
        print(f"  Posts directory: {cfg.storage.paths.posts_dir}")
        print(f"  Orphan policy: {cfg.submission.orphan_policy.value}")
        print(f"  Redirect: {cfg.gate.redirect_to} after {cfg.gate.redirect_delay_s}s")
        print(f"  API server enabled: {cfg.server.enabled}")

    def reconcile(
        self,
        config: str,
        batch_size: int = 100,
        dry_run: bool = True,
        log_level: str = "INFO",
    ) -> None:
        """Delete uploaded images that no post references.

        Args:
            config: Path to YAML config file
            batch_size: Ledger paging size
            dry_run: If True, log actions but do not delete or mark rows resolved
            log_level: Logging level
        """
        setup_logging(log_level)

        opts = ReconcileOptions(
            config_path=Path(config),
            batch_size=batch_size,
            dry_run=dry_run,
        )

        try:
            counts = asyncio.run(run_reconcile(opts))
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)
        except KeyboardInterrupt:
            return

        print(
            f"Scanned {counts.scanned}: deleted={counts.deleted} "
            f"still_referenced={counts.still_referenced} delete_errors={counts.delete_errors}"
        )


def main() -> None:
    """Main CLI entrypoint."""
    # Strip --help/-h when it's the only arg so Fire shows its commands list
    if len(sys.argv) == 2 and sys.argv[1] in ("--help", "-h"):
        sys.argv.pop()
    fire.Fire(MedPost)


if __name__ == "__main__":
    main()
