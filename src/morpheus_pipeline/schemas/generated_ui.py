from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError

from morpheus_pipeline.schemas._base import ArtifactModel, new_id
from morpheus_pipeline.schemas.agent_spec import InputField, OutputField


class UIComponent(ArtifactModel):
    name: str
    type: str
    props: dict[str, Any] = Field(default_factory=dict)


class GeneratedUI(ArtifactModel):
    id: str = Field(default_factory=new_id)
    deployment_result_id: str
    agent_spec_id: str
    public_url: str = ""
    components: list[UIComponent] = Field(default_factory=list)
    accessibility_score: float = 0
    responsive: bool = True

    @classmethod
    def parse_lenient(
        cls, raw: Any, *, deployment_result_id: str, agent_spec_id: str
    ) -> GeneratedUI:
        """Build a UI record from the model answer, keeping the parent ids given."""
        parents = {
            "deployment_result_id": deployment_result_id,
            "agent_spec_id": agent_spec_id,
        }
        if not isinstance(raw, dict):
            return cls(**parents)

        items = raw.get("components")
        components = []
        for item in items if isinstance(items, list) else []:
            try:
                components.append(UIComponent.model_validate(item))
            except ValidationError:
                continue

        raw_id = raw.get("id")
        public_url = raw.get("publicUrl")
        score = raw.get("accessibilityScore")
        responsive = raw.get("responsive")
        return cls(
            id=raw_id if isinstance(raw_id, str) and raw_id else new_id(),
            public_url=public_url if isinstance(public_url, str) else "",
            components=components,
            accessibility_score=(
                score if isinstance(score, (int, float)) and not isinstance(score, bool) else 0
            ),
            responsive=responsive if isinstance(responsive, bool) else True,
            **parents,
        )


def default_components(
    inputs: list[InputField], outputs: list[OutputField]
) -> list[UIComponent]:
    """Minimal component set derived from the declared inputs and outputs."""
    components: list[UIComponent] = []
    if inputs:
        components.append(
            UIComponent(
                name="AgentInputForm",
                type="form",
                props={
                    "fields": [
                        {
                            "name": f.name,
                            "type": f.type,
                            "required": f.required,
                            "label": f.description,
                        }
                        for f in inputs
                    ]
                },
            )
        )
    if outputs:
        components.append(
            UIComponent(
                name="AgentResponseDisplay",
                type="display",
                props={
                    "fields": [
                        {"name": f.name, "type": f.type, "label": f.description}
                        for f in outputs
                    ],
                    "streaming": True,
                },
            )
        )
    components.append(
        UIComponent(
            name="LoadingIndicator",
            type="feedback",
            props={"message": "Processing your request..."},
        )
    )
    components.append(
        UIComponent(name="ErrorDisplay", type="feedback", props={"retryable": True})
    )
    return components


def public_url_for(endpoint: str) -> str:
    return f"{endpoint.removesuffix('/')}/ui"
