from udyam_kpi.core.config import Settings
from udyam_kpi.core.logging_config import setup_logging
from udyam_kpi.main import create_app

settings = Settings()
setup_logging(settings)

# Create FastAPI app
app = create_app(settings)


def run_http(port: int = 8000):
    """Run HTTP server"""
    import uvicorn
    print(f"🚀 Starting HTTP server on port {port}...")
    uvicorn.run(
        "main:app",  # Use string import
        host="0.0.0.0",
        port=port,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    import sys

    port = 8000
    if "--port" in sys.argv:
        port = int(sys.argv[sys.argv.index("--port") + 1])
    run_http(port)
