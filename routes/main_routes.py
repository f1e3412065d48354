from flask import Blueprint, request, Response, jsonify

from database import get_conversion_history, clear_conversion_history

# Create Blueprint
main_bp = Blueprint('main', __name__)

@main_bp.route('/')
def index():
    """Liveness check."""
    return Response("Backend is running", mimetype='text/plain')


@main_bp.route('/history', methods=['GET'])
def fetch_history_endpoint():
    """API endpoint to fetch recent conversion records."""
    limit = request.args.get('limit', type=int)
    if limit is not None and limit <= 0:
        return jsonify({"error": "limit must be a positive integer."}), 400
    try:
        history_list = get_conversion_history(limit)
        return jsonify({'history': history_list})
    except Exception as e:
        # Catch unexpected errors during fetch
        print(f"Error in /history endpoint: {e}")
        return jsonify({'error': f'An unexpected error occurred: {str(e)}'}), 500


@main_bp.route('/history', methods=['DELETE'])
def delete_history_endpoint():
    """API endpoint to clear the conversion history."""
    try:
        deleted_count = clear_conversion_history()
        return jsonify({
            "success": True,
            "message": f"Deleted {deleted_count} entries.",
            "deleted_count": deleted_count
        }), 200
    except Exception as e:
        print(f"Error in DELETE /history endpoint: {e}")
        return jsonify({"error": f"An unexpected error occurred: {str(e)}"}), 500
