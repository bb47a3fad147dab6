"""
ART BLOCKS PROJECT SOURCE

Project-source collaborator for the index builder. Reads projects per core
contract from the Art Blocks subgraph and project start times ("birthdays")
from the Hasura metadata API, all through the PaginatedFetcher.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from .errors import MalformedRecord, SourceUnavailable
from .models import ProjectRecord
from .paginator import DEFAULT_PAGE_SIZE, PaginatedFetcher
from .subgraph_client import GraphQLClient

logger = logging.getLogger(__name__)

PROJECT_FIELDS = """
        projectId
        name
        invocations
        maxInvocations
        curationStatus
        active
        contract {
          id
        }
"""

CONTRACT_PROJECTS = """
  query getContractProjects($id: ID!, $first: Int!, $skip: Int) {
    contract(id: $id) {
      projects(first: $first, skip: $skip, orderBy: projectId) {%s}
    }
  }
""" % PROJECT_FIELDS

CONTRACT_OPEN_PROJECTS = """
  query getContractOpenProjects($id: ID!, $first: Int!, $skip: Int) {
    contract(id: $id) {
      projects(
        first: $first
        skip: $skip
        orderBy: projectId
        where: { paused: false, active: true, complete: false }
      ) {%s}
    }
  }
""" % PROJECT_FIELDS

CONTRACT_PROJECT = """
  query getContractProject($id: ID!, $projectId: Int!) {
    contract(id: $id) {
      projects(where: { projectId: $projectId }) {%s}
    }
  }
""" % PROJECT_FIELDS

CONTRACT_PROJECTS_MINIMAL = """
  query getContractProjectsMinimal($id: ID!, $first: Int!, $skip: Int) {
    contract(id: $id) {
      projects(first: $first, skip: $skip, orderBy: projectId) {
        projectId
      }
    }
  }
"""

PBAB_CONTRACTS = """
  query getPBABContracts($ids: [ID]!) {
    contracts(where: { id_not_in: $ids }) {
      id
    }
  }
"""

PROJECT_START_TIMES = """
  query getProjectStartTimes($first: Int!, $skip: Int) {
    projects_metadata(limit: $first, offset: $skip) {
      id
      start_datetime
    }
  }
"""


class ArtBlocksProjectSource:
    """
    Subgraph + Hasura backed project source.

    Source ids are core contract addresses. Hasura is optional; without it
    there are simply no birthdays.
    """

    def __init__(self, subgraph: GraphQLClient, hasura: GraphQLClient = None,
                 page_size: int = DEFAULT_PAGE_SIZE, core_contracts: Iterable[str] = ()):
        self.subgraph = subgraph
        self.hasura = hasura
        self.fetcher = PaginatedFetcher(page_size)
        self.core_contracts = [c.lower() for c in core_contracts]

    async def close(self):
        await self.subgraph.close()
        if self.hasura:
            await self.hasura.close()

    # ------------------------------------------------------------------
    # Page functions (source_id, first, skip) -> raw list
    # ------------------------------------------------------------------

    async def _contract_page(self, document: str, contract_id: str, first: int, skip: int) -> List[Dict]:
        data = await self.subgraph.query(document, {'id': contract_id, 'first': first, 'skip': skip})
        contract = data.get('contract')
        if contract is None:
            logger.warning(f"[SOURCE] Contract {contract_id} not found on subgraph")
            return []
        projects = contract.get('projects')
        if not isinstance(projects, list):
            raise MalformedRecord(contract_id, "contract.projects missing from response")
        return projects

    async def _projects_page(self, contract_id: str, first: int, skip: int) -> List[Dict]:
        return await self._contract_page(CONTRACT_PROJECTS, contract_id, first, skip)

    async def _open_projects_page(self, contract_id: str, first: int, skip: int) -> List[Dict]:
        return await self._contract_page(CONTRACT_OPEN_PROJECTS, contract_id, first, skip)

    async def _minimal_projects_page(self, contract_id: str, first: int, skip: int) -> List[Dict]:
        return await self._contract_page(CONTRACT_PROJECTS_MINIMAL, contract_id, first, skip)

    async def _start_times_page(self, source_id: str, first: int, skip: int) -> List[Dict]:
        data = await self.hasura.query(PROJECT_START_TIMES, {'first': first, 'skip': skip})
        rows = data.get('projects_metadata')
        if not isinstance(rows, list):
            raise MalformedRecord(source_id, "projects_metadata missing from response")
        return rows

    # ------------------------------------------------------------------
    # Collaborator surface
    # ------------------------------------------------------------------

    async def fetch_projects(self, contract_id: str) -> List[ProjectRecord]:
        """All projects on one contract."""
        raw = await self.fetcher.fetch_all(self._projects_page, contract_id)
        return [ProjectRecord.from_subgraph(p, contract_id) for p in raw]

    async def fetch_open_projects(self, contract_id: str) -> List[ProjectRecord]:
        """Projects on one contract that are active, unpaused and still minting."""
        raw = await self.fetcher.fetch_all(self._open_projects_page, contract_id)
        return [ProjectRecord.from_subgraph(p, contract_id) for p in raw]

    async def fetch_birthdays(self) -> Dict[str, str]:
        """
        Project start times from Hasura.

        Returns:
            {"contract-projectNumber": ISO8601 start_datetime}; {} when Hasura
            is not configured
        """
        if self.hasura is None:
            return {}

        rows = await self.fetcher.fetch_all(self._start_times_page, 'hasura')
        birthdays = {}
        for row in rows:
            if not isinstance(row, dict) or not row.get('id'):
                raise MalformedRecord('hasura', f"bad projects_metadata row {row!r}")
            if row.get('start_datetime'):
                # ids are "contract-projectNumber"; contracts compare lower-case
                contract, _, number = row['id'].rpartition('-')
                birthdays[f"{contract.lower()}-{number}"] = row['start_datetime']
        logger.info(f"[SOURCE] {len(birthdays)} project start times loaded")
        return birthdays

    async def fetch_project(self, project_number: int, contract_id: str = None) -> Optional[ProjectRecord]:
        """
        A single project by number.

        Without a contract every core contract is asked and the first hit wins.
        """
        contracts = [contract_id] if contract_id else self.core_contracts
        results = await asyncio.gather(
            *(self._fetch_contract_project(project_number, c) for c in contracts)
        )
        return next((r for r in results if r is not None), None)

    async def _fetch_contract_project(self, project_number: int, contract_id: str) -> Optional[ProjectRecord]:
        try:
            data = await self.subgraph.query(CONTRACT_PROJECT, {'id': contract_id, 'projectId': project_number})
        except SourceUnavailable as e:
            logger.warning(f"[SOURCE] Project {project_number} lookup on {contract_id} failed: {e}")
            return None
        projects = (data.get('contract') or {}).get('projects') or []
        if not projects:
            return None
        return ProjectRecord.from_subgraph(projects[0], contract_id)

    async def fetch_project_count(self, contract_ids: Iterable[str] = None) -> int:
        contract_ids = list(contract_ids or self.core_contracts)
        pages = await asyncio.gather(
            *(self.fetcher.fetch_all(self._minimal_projects_page, c) for c in contract_ids)
        )
        return sum(len(p) for p in pages)

    async def fetch_pbab_contracts(self, excluded_ids: Iterable[str]) -> List[str]:
        """Every contract id that is neither a core nor a collaboration contract."""
        data = await self.subgraph.query(PBAB_CONTRACTS, {'ids': list(excluded_ids)})
        contracts = data.get('contracts')
        if not isinstance(contracts, list):
            raise MalformedRecord(self.subgraph.name, "contracts missing from response")
        return [c['id'] for c in contracts if isinstance(c, dict) and c.get('id')]
