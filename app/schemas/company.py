from pydantic import BaseModel, ConfigDict


class CompanyProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    ticker: str = ""
    exchange: str = ""
    industry: str = ""
    country: str = ""
    currency: str = "USD"
    ipo: str = ""
    logo: str = ""
    weburl: str = ""
    market_capitalization: float = 0.0
    share_outstanding: float = 0.0
