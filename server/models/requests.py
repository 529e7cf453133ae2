from pydantic import BaseModel

from shared.models.specification import StageConfiguration


class StageConfigurationRequest(BaseModel):
    micoserver: str | None = None
    micouser: str | None = None
    micopassword: str | None = None
    micodocuri: str | None = None

    def to_stage_configuration(self) -> StageConfiguration:
        return StageConfiguration(
            server=self.micoserver,
            user=self.micouser,
            password=self.micopassword,
            doc_uri_field=self.micodocuri,
        )
