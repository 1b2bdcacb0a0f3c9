from sheet_nps.cli import app

app()
