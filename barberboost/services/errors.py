class PipelineError(Exception):
    """Base error for the report pipeline. Controllers map it to a JSON response."""

    status_code = 500
    code = None

    def __init__(self, message, code=None, status_code=None, details=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self):
        body = {'success': False, 'error': self.message}
        if self.code:
            body['code'] = self.code
        body.update(self.details)
        return body


class ValidationError(PipelineError):
    status_code = 400
    code = 'VALIDATION_ERROR'


class NotFoundError(PipelineError):
    status_code = 404
    code = 'NOT_FOUND'


class MissingCredentialsError(PipelineError):
    status_code = 400
    code = 'MISSING_CLOVER_CREDENTIALS'

    def __init__(self, message='Clover credentials not found. Please configure your Clover API credentials.', **kwargs):
        super().__init__(message, **kwargs)


class UpstreamError(PipelineError):
    status_code = 500
    code = 'UPSTREAM_ERROR'


class PipelinePreconditionError(PipelineError):
    status_code = 400
    code = 'PIPELINE_PRECONDITION_FAILED'


class StepConflictError(PipelineError):
    status_code = 409
    code = 'PIPELINE_STEP_CONFLICT'
