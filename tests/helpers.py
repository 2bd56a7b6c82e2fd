from app.core.jwt_config import create_access_token

ALICE, BOB, CAROL, DAVE = 1, 2, 3, 4
FAMILY = 1


def auth(user_id: int) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user_id)})}"}
