from app.schemas.common import ApiModel


class InvitationResponse(ApiModel):
    to: str
    interview_link: str
    delivered: bool


class TokenVerification(ApiModel):
    valid: bool
    interview_id: str
    status: str
