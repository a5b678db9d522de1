from ordertrack.scripts.cli import cli

cli()
