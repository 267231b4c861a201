from cryptodash.cli.commands import cli

cli()
