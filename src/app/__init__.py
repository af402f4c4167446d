"""Command-line front end for the installed program scanner."""
