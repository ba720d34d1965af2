from agentai.main import cli

cli()
