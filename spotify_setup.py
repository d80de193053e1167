"""Spotify OAuth setup functionality for getting refresh tokens."""

import base64
import os
import webbrowser
from typing import Dict, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import requests
from dotenv import load_dotenv, set_key

from config import (
    ENV_FILE,
    SPOTIFY_AUTHORIZE_URL,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPE,
    SPOTIFY_TOKEN_URL,
)


def get_auth_url(client_id: str) -> str:
    """Generate the Spotify authorization URL."""
    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": SPOTIFY_REDIRECT_URI,
        "scope": SPOTIFY_SCOPE,
        "show_dialog": "true"
    }
    return f"{SPOTIFY_AUTHORIZE_URL}?{urlencode(params)}"


def extract_code(text: str) -> str:
    """Return the authorization code from a bare code or a pasted redirect URL."""
    text = text.strip()
    if "code=" not in text:
        return text
    params = parse_qs(urlparse(text).query)
    if 'code' in params:
        return params['code'][0]
    return text.split("code=")[1].split("&")[0]


def exchange_code_for_tokens(auth_code: str, client_id: str, client_secret: str) -> Optional[Dict]:
    """Exchange authorization code for access and refresh tokens."""
    client_creds = f"{client_id}:{client_secret}"
    client_creds_b64 = base64.b64encode(client_creds.encode()).decode()

    headers = {
        "Authorization": f"Basic {client_creds_b64}",
        "Content-Type": "application/x-www-form-urlencoded"
    }

    data = {
        "grant_type": "authorization_code",
        "code": auth_code,
        "redirect_uri": SPOTIFY_REDIRECT_URI
    }

    try:
        response = requests.post(SPOTIFY_TOKEN_URL, headers=headers, data=data)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        print(f"Error exchanging code for tokens: {e}")
        if getattr(e, 'response', None) is not None:
            print(f"Response: {e.response.text}")
        return None


def run_setup(env_path: str = ENV_FILE):
    """Run the interactive setup process."""
    print("=" * 60)
    print("SPOTIFY AUTHENTICATION SETUP")
    print("=" * 60)

    load_dotenv(env_path, override=False)
    client_id = os.environ.get("CLIENT_ID", "").strip()
    client_secret = os.environ.get("CLIENT_SECRET", "").strip()

    if not client_id or not client_secret:
        print("\n⚠️  First, you need to configure your Spotify App credentials:")
        print("1. Go to https://developer.spotify.com/dashboard")
        print("2. Create a new app (or use existing)")
        print("3. Add EXACTLY this Redirect URI to your app settings:")
        print(f"   {SPOTIFY_REDIRECT_URI}")
        print(f"4. Set CLIENT_ID and CLIENT_SECRET in {env_path} or the environment")
        print("\nAfter updating the credentials, run --setup again.")
        return

    print(f"\nClient ID: {client_id[:20]}...")
    print("✓ Credentials detected\n")

    auth_url = get_auth_url(client_id)
    print("Opening Spotify authorization page in your browser...")
    print("\nIf the browser doesn't open automatically, visit this URL:")
    print(f"\n{auth_url}\n")
    webbrowser.open(auth_url)

    print("1. Authorize the app in your browser")
    print("2. You'll be redirected to oauth.pstmn.io")
    print("3. Copy the 'code' parameter from the URL (or paste the whole URL)")

    auth_code = extract_code(input("\nPaste the authorization code here: "))
    if not auth_code:
        print("\n✗ No authorization code provided")
        return

    print("\n✓ Authorization code received")
    print("Exchanging authorization code for tokens...")
    tokens = exchange_code_for_tokens(auth_code, client_id, client_secret)

    if not tokens:
        print("\n✗ Failed to get tokens")
        print("- Make sure the Redirect URI in your app matches EXACTLY:")
        print(f"  {SPOTIFY_REDIRECT_URI}")
        print("- The authorization code expires within a few minutes and can only be used once")
        return

    if 'refresh_token' not in tokens:
        print("\n✗ No refresh token received")
        print("Remove the app at https://www.spotify.com/account/apps/ and run --setup again.")
        return

    refresh_token = tokens['refresh_token']
    print("✓ Tokens received successfully!")
    print("\nYour refresh token:")
    print(f"\n{refresh_token}\n")

    answer = input(f"Enter 'yes' to save it as REFRESH_TOKEN in {env_path}: ").strip().lower()
    if answer == 'yes':
        set_key(env_path, "REFRESH_TOKEN", refresh_token)
        print(f"\n✓ Updated {env_path} with your refresh token")
    else:
        print("\nSet REFRESH_TOKEN to the value shown above (for CI, add it as a repository secret).")
