"""Command-line entry point for the vcf_combine package."""

from .cli import main as _workflow_main


def main() -> None:
    """Execute the vcf-combine command-line interface."""

    _workflow_main()


if __name__ == "__main__":  # pragma: no cover - entry point
    main()
