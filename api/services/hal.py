# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.
Implements HATEOAS Level-3 responses for the Ley Karin process resource:
the action links offered depend on the stage and on the compliance gate.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from models.entities import Case
from models.enums import AuthorityType, Stage
from models.responses import ComplianceStatus, Deadline, HalLink, StageInfo


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(
        self,
        path: str,
        method: str = "GET",
        content_type: Optional[str] = None,
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build a HAL link with proper URL construction."""
        href = urljoin(self.base_url, path.lstrip('/'))

        return HalLink(
            href=href,
            method=method,
            type=content_type,
            title=title,
            templated=templated or None
        )

    def build_self_link(self, resource_path: str) -> HalLink:
        return self.build_link(resource_path, title="Self")

    def build_action_link(
        self,
        resource_path: str,
        action: str,
        method: str = "POST",
        title: Optional[str] = None,
        templated: bool = False
    ) -> HalLink:
        """Build action link for a resource."""
        return self.build_link(
            f"{resource_path}/{action}",
            method=method,
            content_type="application/json",
            title=title or action.replace('-', ' ').title(),
            templated=templated
        )


def process_path(company_id: str, case_id: str) -> str:
    return f"/api/companies/{company_id}/cases/{case_id}/karin"


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on process state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_process_affordances(
        self,
        company_id: str,
        case_id: str,
        stage_info: Optional[StageInfo]
    ) -> Dict[str, HalLink]:
        """
        Links for the process resource.

        Args:
            company_id: Company scope
            case_id: Case identifier
            stage_info: Current stage view, None when the process has not started

        Returns:
            Link relation to link
        """
        base_path = process_path(company_id, case_id)
        build = self.link_builder
        links = {
            'self': build.build_self_link(base_path),
            'case': build.build_link(f"/api/companies/{company_id}/cases/{case_id}", title="Case"),
        }

        if stage_info is None:
            links['start'] = build.build_action_link(base_path, "start", title="Start Ley Karin process")
            return links

        links['stage'] = build.build_link(f"{base_path}/stage", title="Current stage")
        links['deadlines'] = build.build_link(f"{base_path}/deadlines", title="Active deadlines")
        links['timeline'] = build.build_link(f"{base_path}/timeline", title="Deadline timeline")
        links['compliance'] = build.build_link(f"{base_path}/compliance", title="Compliance checklist")

        stage = stage_info.stage
        if stage == Stage.CLOSED:
            return links

        if stage_info.can_advance:
            links['advance'] = build.build_action_link(
                base_path, "advance", title=f"Advance to {stage_info.next_stage.value}"
            )

        if stage == Stage.RECEPTION:
            links['rights'] = build.build_action_link(base_path, "rights", title="Record rights information")
            links['subsanation'] = build.build_action_link(base_path, "subsanation", title="Request subsanation")
        elif stage == Stage.SUBSANATION:
            links['subsanation_received'] = build.build_action_link(
                base_path, "subsanation/received", title="Record subsanation received"
            )
        elif stage == Stage.PRECAUTIONARY_MEASURES:
            links['precautionary_measures'] = build.build_action_link(
                base_path, "precautionary-measures", title="Apply precautionary measures"
            )
        elif stage == Stage.INVESTIGATION:
            links['extend_investigation'] = build.build_action_link(
                base_path, "investigation/extension", title="Extend investigation"
            )
        elif stage == Stage.REPORT_APPROVAL:
            links['report_revision'] = build.build_action_link(
                base_path, "report-revisions", title="Record report review"
            )
        elif stage == Stage.INVESTIGATION_COMPLETE:
            links['complete_investigation'] = build.build_action_link(
                base_path, "investigation/complete", title="Mark investigation complete"
            )
        elif stage == Stage.DT_SUBMISSION:
            links['dt_submission'] = build.build_action_link(base_path, "dt-submission", title="Record DT submission")
        elif stage == Stage.DT_RESOLUTION:
            links['dt_resolution'] = build.build_action_link(base_path, "dt-resolution", title="Record DT resolution")

        if stage in (Stage.DECISION_TO_INVESTIGATE, Stage.INVESTIGATION):
            links['testimonies'] = build.build_action_link(base_path, "testimonies", title="Register testimony")
        if stage in (Stage.DT_RESOLUTION, Stage.MEASURES_ADOPTION):
            links['measures'] = build.build_action_link(base_path, "measures", title="Adopt measure")

        for authority in AuthorityType:
            links[f"notify_{authority.value}"] = build.build_action_link(
                base_path, f"notifications/{authority.value}", title=f"Notify {authority.value.upper()}"
            )
        links['documents'] = build.build_action_link(base_path, "documents", title="Register document")
        links['folios'] = build.build_action_link(base_path, "folios", title="Allocate folio")
        return links


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/')
        self.link_builder = HalLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        response = dict(data)
        response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return response

    def build_collection_response(
        self,
        items: List[Dict[str, Any]],
        collection_path: str,
        rel: str = "items",
        extra_links: Optional[Dict[str, HalLink]] = None
    ) -> Dict[str, Any]:
        """Build a HAL collection; process collections are small and never paginated."""
        links = {'self': self.link_builder.build_self_link(collection_path)}
        links.update(extra_links or {})
        return {
            'total': len(items),
            '_links': {name: link.model_dump(exclude_none=True) for name, link in links.items()},
            '_embedded': {rel: items}
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        errors: Optional[List[Any]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"{self.base_url}/problems/{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if errors:
            error_response['errors'] = errors

        links = {
            'help': self.link_builder.build_link(f"/docs/errors#{error_type}", title="Error documentation")
        }
        if status in (400, 422):
            links['schema'] = self.link_builder.build_link("/openapi/openapi.json", title="API schema")

        error_response['_links'] = {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}
        return error_response


class HalFormatter:
    """High-level HAL formatter with convenience methods."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)

    def format_process(self, case: Case, stage_info: Optional[StageInfo]) -> Dict[str, Any]:
        """Process resource: the persisted process plus its stage view."""
        data = {
            'case_id': case.id,
            'case_code': case.code,
            'is_karin_case': case.is_karin_case,
            'version': case.version,
            'process': case.karin_process.model_dump(mode="json") if case.karin_process else None,
            'stage_info': stage_info.model_dump(mode="json") if stage_info else None,
        }
        links = self.builder.affordance_builder.build_process_affordances(case.company_id, case.id, stage_info)
        return self.builder.build_resource_response(data, links)

    def format_stage(self, company_id: str, case_id: str, stage_info: StageInfo) -> Dict[str, Any]:
        links = self.builder.affordance_builder.build_process_affordances(company_id, case_id, stage_info)
        links['self'] = self.builder.link_builder.build_self_link(f"{process_path(company_id, case_id)}/stage")
        links['process'] = self.builder.link_builder.build_link(process_path(company_id, case_id), title="Process")
        return self.builder.build_resource_response(stage_info.model_dump(mode="json"), links)

    def format_deadlines(
        self,
        company_id: str,
        case_id: str,
        deadlines: List[Deadline],
        resource: str = "deadlines"
    ) -> Dict[str, Any]:
        base_path = process_path(company_id, case_id)
        return self.builder.build_collection_response(
            [deadline.model_dump(mode="json") for deadline in deadlines],
            f"{base_path}/{resource}",
            rel="deadlines",
            extra_links={'process': self.builder.link_builder.build_link(base_path, title="Process")}
        )

    def format_compliance(self, company_id: str, case_id: str, status: ComplianceStatus) -> Dict[str, Any]:
        base_path = process_path(company_id, case_id)
        links = {
            'self': self.builder.link_builder.build_self_link(f"{base_path}/compliance"),
            'process': self.builder.link_builder.build_link(base_path, title="Process"),
        }
        return self.builder.build_resource_response(status.model_dump(mode="json"), links)

    def format_record(self, company_id: str, case_id: str, record: Dict[str, Any], path: str) -> Dict[str, Any]:
        """A record created inside the process (testimony, measure, document, folio)."""
        base_path = process_path(company_id, case_id)
        links = {
            'self': self.builder.link_builder.build_self_link(f"{base_path}/{path}"),
            'process': self.builder.link_builder.build_link(base_path, title="Process"),
        }
        return self.builder.build_resource_response(record, links)

    def format_error(
        self,
        status: int,
        error_type: str,
        title: str,
        detail: str,
        instance: str,
        errors: Optional[List[Any]] = None
    ) -> Dict[str, Any]:
        return self.builder.build_error_response(error_type, title, status, detail, instance, errors)


def create_hal_formatter(base_url: str) -> HalFormatter:
    """Create a HAL formatter instance."""
    return HalFormatter(base_url)
