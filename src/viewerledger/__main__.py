from viewerledger.main import cli

cli()
