from decido.cli import app

app()
