from flask import Blueprint, jsonify

from barberboost.services.errors import ValidationError
from barberboost.services.registry import get_services
from barberboost.utils.http import error_response, get_json_body, require_fields
from barberboost.utils.validation import is_valid_uuid

report_email_bp = Blueprint('report_email', __name__, url_prefix='/functions')


@report_email_bp.route('/send-commission-report', methods=['POST'])
def send_commission_report():
    try:
        data = get_json_body()
        require_fields(data, 'merchantId', 'dateRange')
        if not is_valid_uuid(data['merchantId']):
            raise ValidationError('Invalid merchant ID format')
        sales_data = data.get('salesData') or []
        if not isinstance(sales_data, list):
            raise ValidationError('salesData must be a list')

        result = get_services().notifier.send_report_email(
            data['merchantId'],
            sales_data,
            data['dateRange']
        )

        return jsonify({'success': True, **result}), 200

    except Exception as e:
        return error_response(e)
