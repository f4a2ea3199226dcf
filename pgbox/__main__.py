from pgbox.cli.main import app_entry

app_entry()
