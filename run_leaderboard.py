from app import create_app
from app.routes.commands import print_leaderboard

app = create_app()
with app.app_context():
    try:
        print_leaderboard(app.extensions['game_station'])
    except Exception as e:
        print(f"Error printing leaderboard: {str(e)}")
