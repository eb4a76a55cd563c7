# backend/main.py
# Google Cloud Buildpacks için entrypoint dosyası
# Bu dosya telecloud/main.py'daki FastAPI uygulamasını import eder

from telecloud.main import app

if __name__ == "__main__":
    import uvicorn
    import os
    port = int(os.environ.get("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
