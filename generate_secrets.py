#!/usr/bin/env python3
"""
Generate a secure SECRET_KEY for the Pick'em league service
"""

import secrets


def generate_secrets():
    """Generate a secure random key and print it in .env format"""
    print("Generating secure secrets for Pick'em League...")
    print("=" * 50)

    print(f"SECRET_KEY={secrets.token_urlsafe(32)}")

    print("=" * 50)
    print("Copy this value to your .env file and keep it out of version control.")


if __name__ == "__main__":
    generate_secrets()
