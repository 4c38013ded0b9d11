"""
pgmigrate CLI - Command-line interface for database migration.

Commands:
    pgmigrate migrate my-app          # Migrate my-app to a new database
    pgmigrate plan my-app             # Show what a migration would do
    pgmigrate transfer my-app HEROKU_POSTGRESQL_RED

This creates the 'pgmigrate' command via entry point in pyproject.toml.
"""


def main():
    """Main entry point for the pgmigrate CLI."""
    from pgmigrate.cli.app import cli

    cli(obj={})


if __name__ == "__main__":
    main()
