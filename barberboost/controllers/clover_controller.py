from flask import Blueprint, jsonify

from barberboost.services.registry import get_services
from barberboost.utils.http import error_response, get_json_body, require_fields

clover_bp = Blueprint('clover', __name__, url_prefix='/functions')


@clover_bp.route('/clover-sales', methods=['POST'])
def clover_sales():
    """Fetch and store Clover sales for an explicit ``startDate``/``endDate`` window."""
    try:
        data = get_json_body()
        require_fields(data, 'merchantId', 'startDate', 'endDate')

        summary = get_services().sales_fetcher.fetch_sales(
            data['merchantId'],
            data['startDate'],
            data['endDate']
        )

        return jsonify({'success': True, **summary.to_dict()}), 200

    except Exception as e:
        return error_response(e)


@clover_bp.route('/clover-shop-info', methods=['POST'])
def clover_shop_info():
    try:
        data = get_json_body()
        require_fields(data, 'merchantId')
        return jsonify(get_services().shop_info.get_shop_info(data['merchantId'])), 200
    except Exception as e:
        return error_response(e)
