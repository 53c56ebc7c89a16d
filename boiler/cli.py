"""CLI entry points for the boiler package."""

import sys


def main_boiler():
    """Entry point for the boiler command."""
    from boiler.core.main import main
    sys.exit(main())


def main_remux():
    """Entry point for the boiler-remux command."""
    from boiler.core.remux import main
    sys.exit(main())


def main_cleanup():
    """Entry point for the boiler-cleanup command."""
    from boiler.core.cleanup import main
    sys.exit(main())


def main_remux_audio():
    """Entry point for the boiler-remux-audio command."""
    from boiler.core.remux_audio import main
    sys.exit(main())


if __name__ == "__main__":
    main_boiler()
