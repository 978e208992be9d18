"""Typer sub-applications, one per ``ergosum`` verb."""
