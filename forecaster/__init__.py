"""Deterministic retirement forecasting: when can I retire, and how does the portfolio get there."""
