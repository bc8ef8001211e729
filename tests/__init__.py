import os

# The app builds its store at import time; tests never touch disk or Redis.
os.environ["STORAGE_BACKEND"] = "memory"
