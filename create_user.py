import argparse

from app import create_app
from errors import ValidationError
from models import create_user, get_user_by_email
from permissions import ROLE_ORDER


def main(argv=None):
    parser = argparse.ArgumentParser(description='Create a new user.')
    parser.add_argument('email', help='Email (login)')
    parser.add_argument('password', help='Password')
    parser.add_argument('first_name', help='First name')
    parser.add_argument('last_name', help='Last name')
    parser.add_argument('role', choices=[role.value for role in ROLE_ORDER], help='User role')
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        existing_user = get_user_by_email(args.email)
        if existing_user:
            print(f"User '{existing_user.email}' already exists with role '{existing_user.role.value}'.")
            return 1
        try:
            user = create_user(args.email, args.password, args.first_name, args.last_name, args.role)
        except ValidationError as exc:
            print(exc.message)
            return 1
        print(f"Created user: {user.email} (role: {user.role.value})")
        return 0


if __name__ == '__main__':
    raise SystemExit(main())
