"""Workflow action entry points invoked by the automation platform."""
