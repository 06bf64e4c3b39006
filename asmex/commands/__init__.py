"""Subcommands of the asmex command line tool."""
