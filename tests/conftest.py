"""Force local mode with an in-memory store before the app is imported."""

import os
import tempfile

os.environ["FIREBASE_CREDENTIALS_PATH"] = ""
os.environ["LOCAL_DATA_DIR"] = ""
os.environ["UPLOADS_DIR"] = tempfile.mkdtemp(prefix="editaja-uploads-")
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["GAMBAR_SERVER_URL"] = "https://gambar.editaja.com"
os.environ["GAMBAR_API_TOKEN"] = "host-token"
os.environ["BASE_URL"] = "https://editaja.test"
for _key in (
    "AI_API_KEY",
    "FREEPIK_API_KEY",
    "MIDTRANS_SERVER_KEY",
    "MIDTRANS_CLIENT_KEY",
    "MIDTRANS_IS_PRODUCTION",
    "RESEND_API_KEY",
    "FEEDBACK_NOTIFY_EMAIL",
):
    os.environ.pop(_key, None)
