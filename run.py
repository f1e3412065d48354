from app_factory import create_app
from config import HOST, PORT, DEBUG_MODE

# Create the Flask app instance using the factory
app = create_app()

if __name__ == '__main__':
    # Run the Flask development server (threaded, one conversion per request thread)
    print(f"Starting server with debug={DEBUG_MODE}, host={HOST}, port={PORT}")
    app.run(debug=DEBUG_MODE, host=HOST, port=PORT, threaded=True)
