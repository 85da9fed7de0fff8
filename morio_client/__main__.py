"""
Allow running the client as a module: python -m morio_client
"""
from morio_client.cli import cli


if __name__ == '__main__':
    cli(prog_name='morio')
