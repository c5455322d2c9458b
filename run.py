from app import create_app, db
from app.models import Competition, Game, League, Pick, Score, SeasonStanding, User

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "League": League,
        "Competition": Competition,
        "Game": Game,
        "Pick": Pick,
        "Score": Score,
        "SeasonStanding": SeasonStanding,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
