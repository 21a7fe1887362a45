"""Webapp routers."""
