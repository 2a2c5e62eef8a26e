from flask import Blueprint, jsonify

from barberboost.models.report_pipeline_status import STEP_SCHEDULE, STEP_FETCH
from barberboost.services.registry import get_services
from barberboost.services.report_pipeline import parse_pipeline_date
from barberboost.utils.http import error_response, get_json_body, require_fields

pipeline_bp = Blueprint('pipeline', __name__, url_prefix='/functions')


@pipeline_bp.route('/schedule-data-fetch', methods=['POST'])
def schedule_data_fetch():
    try:
        data = get_json_body()
        require_fields(data, 'merchantId')
        pipeline_date = parse_pipeline_date(data.get('pipelineDate'))

        services = get_services()
        pipeline_date, period = services.pipeline.schedule_data_fetch(
            data['merchantId'],
            pipeline_date=pipeline_date
        )
        steps = services.ledger.get_steps(data['merchantId'], pipeline_date, [STEP_SCHEDULE, STEP_FETCH])

        return jsonify({
            'success': True,
            'message': 'Data fetch scheduled',
            'pipelineDate': pipeline_date.isoformat(),
            'period': period.to_dict(),
            'steps': [step.to_dict() for step in steps]
        }), 200

    except Exception as e:
        return error_response(e)


@pipeline_bp.route('/fetch-sales-data', methods=['POST'])
def fetch_sales_data():
    try:
        data = get_json_body()
        require_fields(data, 'merchantId')
        pipeline_date = parse_pipeline_date(data.get('pipelineDate'))

        summary, period = get_services().pipeline.fetch_sales_data(data['merchantId'], pipeline_date)

        return jsonify({
            'success': True,
            'message': 'Sales data fetched',
            'pipelineDate': pipeline_date.isoformat(),
            'period': period.to_dict(),
            **summary.to_dict()
        }), 200

    except Exception as e:
        return error_response(e)


@pipeline_bp.route('/generate-scheduled-report', methods=['POST'])
def generate_scheduled_report():
    try:
        data = get_json_body()
        require_fields(data, 'merchantId')
        pipeline_date = parse_pipeline_date(data.get('pipelineDate'))

        artifact = get_services().pipeline.generate_report(data['merchantId'], pipeline_date)

        return jsonify({
            'success': True,
            'message': 'Report generated',
            'report': artifact.to_dict()
        }), 200

    except Exception as e:
        return error_response(e)


@pipeline_bp.route('/auto-report-scheduler', methods=['POST'])
def auto_report_scheduler():
    try:
        return jsonify(get_services().scheduler.run()), 200
    except Exception as e:
        return error_response(e)


@pipeline_bp.route('/daily-sales-sync', methods=['POST'])
def daily_sales_sync():
    try:
        data = get_json_body()
        return jsonify(get_services().scheduler.sync_daily_sales(data.get('merchantId'))), 200
    except Exception as e:
        return error_response(e)
