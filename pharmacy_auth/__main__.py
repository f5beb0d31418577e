from pharmacy_auth.main import run

run()
