from flask import Blueprint, jsonify

from barberboost.services.registry import get_services
from barberboost.utils.http import error_response, get_json_body, require_fields

cron_bp = Blueprint('cron', __name__, url_prefix='/functions')


@cron_bp.route('/manage-cron-jobs', methods=['POST'])
def manage_cron_jobs():
    try:
        data = get_json_body()
        require_fields(data, 'action')
        result = get_services().cron.handle(data['action'], merchant_id=data.get('merchantId'))
        return jsonify(result), 200
    except Exception as e:
        return error_response(e)
