"""sheet-nps — Net Promoter Score summaries from messy survey exports."""

__version__ = "0.1.0"

ROW_ID_PREFIX: str = "row_"
PLACEHOLDER_COLUMN_PREFIX: str = "coluna_"
