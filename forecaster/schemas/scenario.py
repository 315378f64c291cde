"""Data contracts for the scenario API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from forecaster.models import ForecastResult, RawParameters


class PingResponse(BaseModel):
    message: str


class ForecastRequest(BaseModel):
    """Raw inputs for a one-off forecast. Missing fields take the default inputs."""

    model_config = ConfigDict(extra="forbid")

    currentAge: Optional[str] = None
    retirementAge: Optional[str] = None
    currentPortfolio: Optional[str] = None
    annualContribution: Optional[str] = None
    annualExpenses: Optional[str] = None
    annualReturnRate: Optional[str] = None
    annualWithdrawalRate: Optional[str] = None

    def with_defaults(self, defaults: RawParameters) -> RawParameters:
        return defaults.model_copy(update=self.model_dump(exclude_none=True))


class ScenarioResponse(BaseModel):
    inputs: RawParameters
    forecast: ForecastResult
    shared: bool = Field(
        ...,
        description="True when the inputs came from a share link; edits are then not cached.",
    )


class ShareResponse(BaseModel):
    token: str
    url: str


class PreferenceBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: bool


class PreferenceResponse(BaseModel):
    name: str
    value: bool
