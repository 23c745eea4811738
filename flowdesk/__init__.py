"""FlowDesk: billing engine and alert surface for a small-business CRM back office."""

__version__ = "0.1.0"
