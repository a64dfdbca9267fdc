from jiradoc.cli.main import app

app()
