"""
Integration tests for the price list (catalog).
"""

import pytest
from decimal import Decimal

from app.exceptions import BusinessLogicError, ConflictError, NotFoundError
from app.models import CatalogItem
from app.services.catalog_service import (
    create_catalog_item,
    delete_catalog_item,
    get_catalog_snapshot,
    list_catalog_items,
    update_catalog_item,
)
from app.services.pricing_engine import PricingModel
from app.services.work_order_service import create_work_order


class TestCatalogService:
    """Tests for catalog_service."""

    def test_create_computes_incl_price(self, session):
        item = create_catalog_item(session, {
            'name': 'Spegel', 'unit_price_excl_tax': '1 200,50', 'vat_rate': '25', 'pricing_model': 'm2',
        })
        assert item.pricing_model == 'M2'
        assert item.unit_price_excl_tax == Decimal('1200.50')
        assert item.unit_price_incl_tax == Decimal('1500.625')

    def test_default_vat_and_model(self, session):
        item = create_catalog_item(session, {'name': 'Skruv', 'unit_price_excl_tax': '2'})
        assert item.vat_rate == Decimal('25')
        assert item.pricing_model == PricingModel.PER_UNIT.value

    @pytest.mark.parametrize('data', [
        {'unit_price_excl_tax': '10'},
        {'name': 'X', 'unit_price_excl_tax': '-5'},
        {'name': 'X', 'unit_price_excl_tax': 'gratis'},
        {'name': 'X', 'unit_price_excl_tax': '10', 'vat_rate': '-1'},
        {'name': 'X', 'unit_price_excl_tax': '10', 'vat_rate': '101'},
        {'name': 'X', 'unit_price_excl_tax': '1e30'},
        {'name': 'X', 'unit_price_excl_tax': '10', 'pricing_model': 'KG'},
    ])
    def test_invalid_payload(self, session, data):
        with pytest.raises(BusinessLogicError):
            create_catalog_item(session, data)

    def test_duplicate_article_number(self, session, glass_item):
        with pytest.raises(ConflictError) as exc:
            create_catalog_item(session, {
                'name': 'Annat glas', 'unit_price_excl_tax': '10', 'article_number': glass_item.article_number,
            })
        assert exc.value.status_code == 409

    def test_update_vat_recomputes_incl_price(self, session, unit_item):
        item = update_catalog_item(session, unit_item.id, {'vat_rate': '12'})
        assert item.unit_price_incl_tax == Decimal('224')
        assert item.name == 'Handtag'

    def test_delete_unused(self, session, unit_item):
        delete_catalog_item(session, unit_item.id)
        assert session.query(CatalogItem).count() == 0

    def test_delete_referenced_item_refused(self, session, customer, glass_item):
        create_work_order(session, {
            'customer_id': customer.id,
            'lines': [{'catalog_item_id': glass_item.id, 'count': 1}],
        }, None)
        with pytest.raises(BusinessLogicError):
            delete_catalog_item(session, glass_item.id)
        assert session.get(CatalogItem, glass_item.id) is not None

    def test_get_missing(self, session):
        with pytest.raises(NotFoundError):
            update_catalog_item(session, 31337, {'name': 'X'})

    def test_list_and_categories(self, session, glass_item, labor_item, unit_item):
        result = list_catalog_items(session, category='Glas')
        assert result['pagination']['total'] == 2
        assert result['categories'] == ['Arbete', 'Glas']

        result = list_catalog_items(session, search='monter')
        assert [i.name for i in result['items']] == ['Montering']

    def test_snapshot_without_redis(self, session, glass_item, labor_item):
        snapshot = get_catalog_snapshot(session)
        assert set(snapshot) == {glass_item.id, labor_item.id}
        assert snapshot[labor_item.id].pricing_model is PricingModel.PER_DURATION
        assert snapshot[glass_item.id].unit_price_incl_tax == Decimal('1250')


class TestCatalogEndpoints:
    """HTTP tests for /catalog."""

    def test_list_is_public(self, client, glass_item):
        response = client.get('/catalog/')
        assert response.status_code == 200
        assert response.get_json()['items'][0]['name'] == 'Floatglas 4 mm'

    def test_snapshot_endpoint(self, client, glass_item):
        response = client.get('/catalog/snapshot')
        assert response.status_code == 200
        entry = response.get_json()[str(glass_item.id)]
        assert entry['pricing_model'] == 'M2'
        assert Decimal(entry['unit_price_incl_tax']) == Decimal('1250')

    def test_create_requires_login(self, client):
        response = client.post('/catalog/', json={'name': 'X', 'unit_price_excl_tax': '1'})
        assert response.status_code == 401

    def test_technician_cannot_edit(self, technician_client):
        response = technician_client.post('/catalog/', json={'name': 'X', 'unit_price_excl_tax': '1'})
        assert response.status_code == 403

    def test_create_update_delete(self, authenticated_client):
        response = authenticated_client.post('/catalog/', json={
            'name': 'Glaslist', 'unit_price_excl_tax': '40', 'pricing_model': 'M', 'article_number': 'LI-1',
        })
        assert response.status_code == 201
        item_id = response.get_json()['id']

        response = authenticated_client.put(f'/catalog/{item_id}', json={'unit_price_excl_tax': '48'})
        assert response.status_code == 200
        assert Decimal(response.get_json()['unit_price_incl_tax']) == Decimal('60')

        response = authenticated_client.post('/catalog/', json={
            'name': 'Dubblett', 'unit_price_excl_tax': '1', 'article_number': 'LI-1',
        })
        assert response.status_code == 409

        assert authenticated_client.delete(f'/catalog/{item_id}').status_code == 200
        assert authenticated_client.get(f'/catalog/{item_id}').status_code == 404
