from campusconnect import create_app

app = create_app()
