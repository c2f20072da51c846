from entitymap.cli import cli

cli()
