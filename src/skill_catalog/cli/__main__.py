from skill_catalog.cli.main import app


def main():
    """Entry point for the ``skill-catalog`` command."""
    app()


if __name__ == "__main__":
    main()
