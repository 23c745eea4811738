"""Utility modules for FlowDesk."""
