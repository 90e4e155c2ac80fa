"""
Captain Performance Dashboard — delivery-captain analytics backend.

Turns a flat shipment fact table (uploaded spreadsheet or the simulator's
sample data) into dashboard-ready views: global KPIs, per-captain stats,
weekly/monthly trends, rankings and risk scores.

To connect to Streamlit:
    Load records with loaders.load_shipments (or simulator.generate_shipments),
    then call the functions in dashboard with the records and a filter dict.
    Every function returns a plain dict or DataFrame ready for Plotly.

To add a scoring scheme:
    Register a ScoringWeights entry in config.SCORING_SCHEMES. Weights for
    unused sub-scores stay 0; set window_days to score only recent records.

To accept a new spreadsheet header:
    Add its snake_case spelling to config.COLUMN_ALIASES.
"""
