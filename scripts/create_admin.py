#!/usr/bin/env python3
"""
Grant admin access to an existing Firebase user.

Usage:
    python3 scripts/create_admin.py user@example.com
    python3 scripts/create_admin.py --uid abc123
    python3 scripts/create_admin.py user@example.com --revoke
"""

import argparse
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import firebase_admin
from dotenv import load_dotenv
from firebase_admin import auth, credentials, firestore

BASE_DIR = Path(__file__).parent.parent
load_dotenv(BASE_DIR / ".env")


def init_firebase():
    """Initialize the Admin SDK from FIREBASE_CREDENTIALS_PATH."""
    if firebase_admin._apps:
        return
    cred_path = os.getenv("FIREBASE_CREDENTIALS_PATH", "./firebase-credentials.json")
    if not os.path.exists(cred_path):
        print(f"Firebase credentials not found at {cred_path}")
        sys.exit(1)
    firebase_admin.initialize_app(credentials.Certificate(cred_path))


def find_user(email=None, uid=None):
    try:
        if uid:
            return auth.get_user(uid)
        return auth.get_user_by_email(email)
    except auth.UserNotFoundError:
        print(f"User not found: {uid or email}")
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description="Mark a Firebase user as edit Aja admin")
    parser.add_argument("email", nargs="?", help="E-mail of the user")
    parser.add_argument("--uid", help="Firebase uid instead of e-mail")
    parser.add_argument("--revoke", action="store_true", help="Remove admin access instead")
    args = parser.parse_args()

    if not args.email and not args.uid:
        parser.error("an e-mail or --uid is required")

    init_firebase()
    user = find_user(args.email, args.uid)
    db = firestore.client()

    db.collection("admins").document(user.uid).set(
        {
            "isAdmin": not args.revoke,
            "email": user.email or "",
            "updatedAt": datetime.now(timezone.utc),
        },
        merge=True,
    )
    action = "revoked from" if args.revoke else "granted to"
    print(f"Admin access {action} {user.email or user.uid} ({user.uid})")


if __name__ == "__main__":
    main()
