from predictor import create_app, db
from predictor.models import (
    Fixture,
    League,
    LeagueMember,
    LiveScore,
    Pick,
    Result,
    Submission,
    User,
)

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Fixture": Fixture,
        "Result": Result,
        "Pick": Pick,
        "Submission": Submission,
        "League": League,
        "LeagueMember": LeagueMember,
        "LiveScore": LiveScore,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
