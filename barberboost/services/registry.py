from dataclasses import dataclass

from flask import current_app

from barberboost.extensions import db, s3
from barberboost.services.clover_client import CloverClient
from barberboost.services.credential_store import CredentialStore
from barberboost.services.cron_schedule import CronScheduleService
from barberboost.services.notifier import ReportNotifier
from barberboost.services.period_calculator import TimezoneOffsetProvider, build_offset_provider
from barberboost.services.pipeline_ledger import PipelineLedger
from barberboost.services.report_generator import ReportGenerator
from barberboost.services.report_pipeline import ReportPipeline
from barberboost.services.report_scheduler import ReportScheduler
from barberboost.services.resend_client import ResendClient
from barberboost.services.sales_fetcher import SalesFetcher
from barberboost.services.shop_info import ShopInfoService
from barberboost.utils.report_pdf import PdfReportRenderer

EXTENSION_KEY = 'barberboost'


@dataclass
class PipelineServices:
    offset_provider: TimezoneOffsetProvider
    ledger: PipelineLedger
    sales_fetcher: SalesFetcher
    report_generator: ReportGenerator
    notifier: ReportNotifier
    pipeline: ReportPipeline
    scheduler: ReportScheduler
    cron: CronScheduleService
    shop_info: ShopInfoService


def build_services(config, clover_client=None, email_client=None, storage=None,
                   offset_provider=None, renderer=None) -> PipelineServices:
    """Wire every pipeline component from a config mapping, once per process."""
    session = db.session
    offset_provider = offset_provider or build_offset_provider(config.get('TIMEZONE_OFFSET_PROVIDER'))
    clover_client = clover_client or CloverClient(
        base_url=config['CLOVER_API_BASE_URL'],
        timeout=config['CLOVER_REQUEST_TIMEOUT'],
        page_size=config['CLOVER_PAGE_SIZE']
    )
    email_client = email_client or ResendClient(
        api_key=config.get('RESEND_API_KEY'),
        api_url=config['RESEND_API_URL']
    )
    storage = storage or s3
    renderer = renderer or PdfReportRenderer()

    ledger = PipelineLedger(session)
    credential_store = CredentialStore(session)
    sales_fetcher = SalesFetcher(
        session,
        clover_client,
        credential_store,
        offset_provider,
        default_commission_percentage=config['DEFAULT_COMMISSION_PERCENTAGE']
    )
    report_generator = ReportGenerator(session, ledger, renderer, storage, offset_provider)
    notifier = ReportNotifier(session, email_client, config['REPORT_EMAIL_SENDER'])
    pipeline = ReportPipeline(session, ledger, sales_fetcher, report_generator, offset_provider)
    scheduler = ReportScheduler(
        session,
        pipeline,
        sales_fetcher,
        offset_provider,
        due_policy=config['REPORT_DUE_POLICY'],
        tolerance_minutes=config['REPORT_DUE_TOLERANCE_MINUTES'],
        notifier=notifier,
        send_emails=config['SEND_REPORT_EMAILS']
    )

    return PipelineServices(
        offset_provider=offset_provider,
        ledger=ledger,
        sales_fetcher=sales_fetcher,
        report_generator=report_generator,
        notifier=notifier,
        pipeline=pipeline,
        scheduler=scheduler,
        cron=CronScheduleService(session, offset_provider),
        shop_info=ShopInfoService(session, credential_store, clover_client)
    )


def init_services(app, **overrides):
    app.extensions[EXTENSION_KEY] = build_services(app.config, **overrides)
    return app.extensions[EXTENSION_KEY]


def get_services() -> PipelineServices:
    return current_app.extensions[EXTENSION_KEY]
