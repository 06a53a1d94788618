from probe_server.main import run

run()
