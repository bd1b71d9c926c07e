from skill_manager.cli.main import app


def main() -> None:
    """Main entry point for the skill-manager command."""
    app()


if __name__ == "__main__":
    main()
