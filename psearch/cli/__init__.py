"""psearch command line interface.

Entry point: ``psearch = psearch.cli.main:cli_main``
"""
