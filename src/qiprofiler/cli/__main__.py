from qiprofiler.cli.main import app

app()
