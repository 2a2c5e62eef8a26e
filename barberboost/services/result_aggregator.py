class MerchantResultAggregator:
    """Collects per-merchant outcomes of a batch run without stopping on failures."""

    def __init__(self):
        self.results = []
        self.success_count = 0
        self.failure_count = 0

    def add_success(self, merchant_id, merchant_name, **data):
        self.results.append({
            'merchantId': merchant_id,
            'merchantName': merchant_name,
            'success': True,
            **data
        })
        self.success_count += 1

    def add_failure(self, merchant_id, merchant_name, error_message, **data):
        self.results.append({
            'merchantId': merchant_id,
            'merchantName': merchant_name,
            'success': False,
            'error': error_message,
            **data
        })
        self.failure_count += 1

    def add_result(self, result):
        self.results.append(result)
        if result.get('success'):
            self.success_count += 1
        else:
            self.failure_count += 1

    @property
    def total_processed(self):
        return len(self.results)

    @property
    def has_failures(self):
        return self.failure_count > 0

    def summary_message(self, label):
        return f"{label} completed. {self.success_count} successful, {self.failure_count} failed"
