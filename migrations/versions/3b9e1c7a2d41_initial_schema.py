"""initial schema

Revision ID: 3b9e1c7a2d41
Revises:
Create Date: 2026-10-18 09:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel

from app.db.schema import (
    OrgType, UserRole, ConservationStatus, QuantityUnit, RawMaterialBatchStatus,
    FinishedGoodProductType, SupplyChainEventType, TestType, TestStatus, TestPriority,
    CertificateType, QREntityType, DocumentType, StockProductType, InventoryStatus,
    RecipientType, ShipmentStatus, VerificationType, VerificationEntityType,
    VerificationStatus, AlertSeverity, AdminActionType,
)


# revision identifiers, used by Alembic.
revision: str = '3b9e1c7a2d41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(enum_cls):
    return sa.Enum(enum_cls, name=enum_cls.__name__.lower())


def _id():
    return sa.Column('id', sa.Uuid(), nullable=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _str(name, nullable=True):
    return sa.Column(name, sqlmodel.sql.sqltypes.AutoString(), nullable=nullable)


def upgrade():
    op.create_table(
        'organization',
        *_timestamps(),
        _id(),
        _str('name', nullable=False),
        sa.Column('type', _enum(OrgType), nullable=False),
        _str('description'),
        _str('registration_number'),
        _str('address'),
        _str('phone'),
        _str('email'),
        _str('website'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_organization_name'), 'organization', ['name'], unique=True)
    op.create_index(op.f('ix_organization_type'), 'organization', ['type'], unique=False)

    op.create_table(
        'user',
        *_timestamps(),
        _id(),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        _str('email', nullable=False),
        _str('hashed_password', nullable=False),
        _str('first_name', nullable=False),
        _str('last_name', nullable=False),
        _str('phone'),
        sa.Column('role', _enum(UserRole), nullable=False),
        sa.Column('org_type', _enum(OrgType), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_user_email'), 'user', ['email'], unique=True)
    op.create_index(op.f('ix_user_organization_id'), 'user', ['organization_id'], unique=False)

    op.create_table(
        'herbspecies',
        *_timestamps(),
        _id(),
        _str('scientific_name', nullable=False),
        _str('common_name', nullable=False),
        _str('family'),
        _str('description'),
        sa.Column('regions', sa.JSON(), nullable=True),
        sa.Column('conservation_status', _enum(ConservationStatus), nullable=False),
        sa.Column('medicinal_uses', sa.JSON(), nullable=True),
        sa.Column('created_by_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['created_by_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_herbspecies_scientific_name'), 'herbspecies', ['scientific_name'], unique=True)

    op.create_table(
        'rawmaterialbatch',
        *_timestamps(),
        _id(),
        _str('herb_name', nullable=False),
        _str('scientific_name'),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', _enum(QuantityUnit), nullable=False),
        sa.Column('status', _enum(RawMaterialBatchStatus), nullable=False),
        _str('description'),
        _str('notes'),
        sa.Column('created_by_id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(['created_by_id'], ['user.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_rawmaterialbatch_herb_name'), 'rawmaterialbatch', ['herb_name'], unique=False)
    op.create_index(op.f('ix_rawmaterialbatch_status'), 'rawmaterialbatch', ['status'], unique=False)

    op.create_table(
        'collectionevent',
        *_timestamps(),
        _id(),
        sa.Column('collector_id', sa.Uuid(), nullable=False),
        sa.Column('farmer_id', sa.Uuid(), nullable=False),
        sa.Column('species_id', sa.Uuid(), nullable=True),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', _enum(QuantityUnit), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('location', sa.JSON(), nullable=True),
        _str('quality_notes'),
        _str('notes'),
        _str('photo_url'),
        sa.Column('collection_date', sa.DateTime(), nullable=False),
        sa.Column('raw_material_batch_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['collector_id'], ['user.id']),
        sa.ForeignKeyConstraint(['farmer_id'], ['user.id']),
        sa.ForeignKeyConstraint(['species_id'], ['herbspecies.id']),
        sa.ForeignKeyConstraint(['raw_material_batch_id'], ['rawmaterialbatch.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_collectionevent_collector_id'), 'collectionevent', ['collector_id'], unique=False)
    op.create_index(op.f('ix_collectionevent_farmer_id'), 'collectionevent', ['farmer_id'], unique=False)
    op.create_index(op.f('ix_collectionevent_species_id'), 'collectionevent', ['species_id'], unique=False)
    op.create_index(op.f('ix_collectionevent_raw_material_batch_id'), 'collectionevent', ['raw_material_batch_id'], unique=False)

    op.create_table(
        'finishedgood',
        *_timestamps(),
        _id(),
        _str('product_name', nullable=False),
        sa.Column('product_type', _enum(FinishedGoodProductType), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', _enum(QuantityUnit), nullable=False),
        _str('description'),
        _str('batch_number'),
        sa.Column('manufacture_date', sa.DateTime(), nullable=True),
        sa.Column('expiry_date', sa.DateTime(), nullable=True),
        sa.Column('manufacturer_id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(['manufacturer_id'], ['user.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_finishedgood_product_name'), 'finishedgood', ['product_name'], unique=False)
    op.create_index(op.f('ix_finishedgood_batch_number'), 'finishedgood', ['batch_number'], unique=True)

    op.create_table(
        'finishedgoodcomposition',
        *_timestamps(),
        _id(),
        sa.Column('finished_good_id', sa.Uuid(), nullable=False),
        sa.Column('raw_material_batch_id', sa.Uuid(), nullable=False),
        sa.Column('percentage', sa.Float(), nullable=False),
        sa.Column('quantity_used', sa.Float(), nullable=False),
        _str('notes'),
        sa.ForeignKeyConstraint(['finished_good_id'], ['finishedgood.id']),
        sa.ForeignKeyConstraint(['raw_material_batch_id'], ['rawmaterialbatch.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_finishedgoodcomposition_finished_good_id'), 'finishedgoodcomposition', ['finished_good_id'], unique=False)
    op.create_index(op.f('ix_finishedgoodcomposition_raw_material_batch_id'), 'finishedgoodcomposition', ['raw_material_batch_id'], unique=False)

    op.create_table(
        'supplychainevent',
        *_timestamps(),
        _id(),
        sa.Column('event_type', _enum(SupplyChainEventType), nullable=False),
        sa.Column('handler_id', sa.Uuid(), nullable=False),
        sa.Column('from_location_id', sa.Uuid(), nullable=False),
        sa.Column('to_location_id', sa.Uuid(), nullable=False),
        sa.Column('raw_material_batch_id', sa.Uuid(), nullable=True),
        sa.Column('finished_good_id', sa.Uuid(), nullable=True),
        _str('notes'),
        sa.Column('event_metadata', sa.JSON(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['handler_id'], ['user.id']),
        sa.ForeignKeyConstraint(['from_location_id'], ['organization.id']),
        sa.ForeignKeyConstraint(['to_location_id'], ['organization.id']),
        sa.ForeignKeyConstraint(['raw_material_batch_id'], ['rawmaterialbatch.id']),
        sa.ForeignKeyConstraint(['finished_good_id'], ['finishedgood.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_supplychainevent_event_type'), 'supplychainevent', ['event_type'], unique=False)
    op.create_index(op.f('ix_supplychainevent_handler_id'), 'supplychainevent', ['handler_id'], unique=False)
    op.create_index(op.f('ix_supplychainevent_raw_material_batch_id'), 'supplychainevent', ['raw_material_batch_id'], unique=False)
    op.create_index(op.f('ix_supplychainevent_finished_good_id'), 'supplychainevent', ['finished_good_id'], unique=False)
    op.create_index(op.f('ix_supplychainevent_timestamp'), 'supplychainevent', ['timestamp'], unique=False)

    op.create_table(
        'labtest',
        *_timestamps(),
        _id(),
        sa.Column('test_type', _enum(TestType), nullable=False),
        _str('sample_name', nullable=False),
        _str('sample_type', nullable=False),
        _str('sample_description'),
        _str('batch_number'),
        sa.Column('collection_date', sa.DateTime(), nullable=False),
        sa.Column('priority', _enum(TestPriority), nullable=False),
        sa.Column('status', _enum(TestStatus), nullable=False),
        sa.Column('requester_id', sa.Uuid(), nullable=False),
        sa.Column('lab_technician_id', sa.Uuid(), nullable=True),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('raw_material_batch_id', sa.Uuid(), nullable=True),
        sa.Column('finished_good_id', sa.Uuid(), nullable=True),
        sa.Column('supply_chain_event_id', sa.Uuid(), nullable=True),
        sa.Column('test_date', sa.DateTime(), nullable=True),
        sa.Column('completion_date', sa.DateTime(), nullable=True),
        sa.Column('results', sa.JSON(), nullable=True),
        _str('methodology'),
        _str('equipment'),
        _str('notes'),
        sa.Column('cost', sa.Float(), nullable=True),
        _str('certification_number'),
        sa.ForeignKeyConstraint(['requester_id'], ['user.id']),
        sa.ForeignKeyConstraint(['lab_technician_id'], ['user.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.ForeignKeyConstraint(['raw_material_batch_id'], ['rawmaterialbatch.id']),
        sa.ForeignKeyConstraint(['finished_good_id'], ['finishedgood.id']),
        sa.ForeignKeyConstraint(['supply_chain_event_id'], ['supplychainevent.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_labtest_test_type'), 'labtest', ['test_type'], unique=False)
    op.create_index(op.f('ix_labtest_status'), 'labtest', ['status'], unique=False)
    op.create_index(op.f('ix_labtest_organization_id'), 'labtest', ['organization_id'], unique=False)

    op.create_table(
        'certificate',
        *_timestamps(),
        _id(),
        _str('certificate_number', nullable=False),
        sa.Column('certificate_type', _enum(CertificateType), nullable=False),
        _str('title', nullable=False),
        _str('description'),
        sa.Column('issue_date', sa.DateTime(), nullable=False),
        sa.Column('expiry_date', sa.DateTime(), nullable=True),
        sa.Column('is_valid', sa.Boolean(), nullable=False),
        sa.Column('test_id', sa.Uuid(), nullable=True),
        sa.Column('issued_by_id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        _str('qr_code_data'),
        _str('digital_signature'),
        sa.ForeignKeyConstraint(['test_id'], ['labtest.id']),
        sa.ForeignKeyConstraint(['issued_by_id'], ['user.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_certificate_certificate_number'), 'certificate', ['certificate_number'], unique=True)
    op.create_index(op.f('ix_certificate_test_id'), 'certificate', ['test_id'], unique=False)

    op.create_table(
        'qrcode',
        *_timestamps(),
        _id(),
        _str('qr_hash', nullable=False),
        sa.Column('entity_type', _enum(QREntityType), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('generated_by_id', sa.Uuid(), nullable=False),
        sa.Column('scan_count', sa.Integer(), nullable=False),
        sa.Column('last_scanned_at', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('custom_data', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['generated_by_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_qrcode_qr_hash'), 'qrcode', ['qr_hash'], unique=True)
    op.create_index(op.f('ix_qrcode_entity_type'), 'qrcode', ['entity_type'], unique=False)
    op.create_index(op.f('ix_qrcode_entity_id'), 'qrcode', ['entity_id'], unique=False)

    op.create_table(
        'document',
        *_timestamps(),
        _id(),
        _str('file_name', nullable=False),
        _str('original_name', nullable=False),
        _str('file_url', nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        _str('mime_type'),
        sa.Column('document_type', _enum(DocumentType), nullable=False),
        _str('description'),
        sa.Column('uploaded_by_id', sa.Uuid(), nullable=False),
        sa.Column('collection_event_id', sa.Uuid(), nullable=True),
        sa.Column('raw_material_batch_id', sa.Uuid(), nullable=True),
        sa.Column('supply_chain_event_id', sa.Uuid(), nullable=True),
        sa.Column('finished_good_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['uploaded_by_id'], ['user.id']),
        sa.ForeignKeyConstraint(['collection_event_id'], ['collectionevent.id']),
        sa.ForeignKeyConstraint(['raw_material_batch_id'], ['rawmaterialbatch.id']),
        sa.ForeignKeyConstraint(['supply_chain_event_id'], ['supplychainevent.id']),
        sa.ForeignKeyConstraint(['finished_good_id'], ['finishedgood.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_document_document_type'), 'document', ['document_type'], unique=False)
    op.create_index(op.f('ix_document_collection_event_id'), 'document', ['collection_event_id'], unique=False)
    op.create_index(op.f('ix_document_raw_material_batch_id'), 'document', ['raw_material_batch_id'], unique=False)
    op.create_index(op.f('ix_document_supply_chain_event_id'), 'document', ['supply_chain_event_id'], unique=False)
    op.create_index(op.f('ix_document_finished_good_id'), 'document', ['finished_good_id'], unique=False)

    op.create_table(
        'distributorinventory',
        *_timestamps(),
        _id(),
        sa.Column('distributor_id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('product_type', _enum(StockProductType), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        _str('product_name', nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', _enum(QuantityUnit), nullable=False),
        _str('location'),
        _str('warehouse_section'),
        sa.Column('status', _enum(InventoryStatus), nullable=False),
        sa.Column('received_date', sa.DateTime(), nullable=False),
        sa.Column('expiry_date', sa.DateTime(), nullable=True),
        _str('quality_notes'),
        _str('storage_conditions'),
        sa.ForeignKeyConstraint(['distributor_id'], ['user.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_distributorinventory_distributor_id'), 'distributorinventory', ['distributor_id'], unique=False)
    op.create_index(op.f('ix_distributorinventory_organization_id'), 'distributorinventory', ['organization_id'], unique=False)
    op.create_index(op.f('ix_distributorinventory_entity_id'), 'distributorinventory', ['entity_id'], unique=False)

    op.create_table(
        'distributorshipment',
        *_timestamps(),
        _id(),
        _str('shipment_number', nullable=False),
        sa.Column('distributor_id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('recipient_type', _enum(RecipientType), nullable=False),
        sa.Column('recipient_id', sa.Uuid(), nullable=False),
        _str('recipient_name'),
        _str('recipient_address', nullable=False),
        _str('recipient_phone'),
        sa.Column('status', _enum(ShipmentStatus), nullable=False),
        sa.Column('shipment_date', sa.DateTime(), nullable=True),
        sa.Column('expected_delivery', sa.DateTime(), nullable=True),
        sa.Column('actual_delivery', sa.DateTime(), nullable=True),
        _str('tracking_number'),
        sa.Column('carrier_info', sa.JSON(), nullable=True),
        sa.Column('shipping_cost', sa.Float(), nullable=True),
        sa.Column('total_value', sa.Float(), nullable=True),
        _str('notes'),
        _str('special_instructions'),
        sa.ForeignKeyConstraint(['distributor_id'], ['user.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.ForeignKeyConstraint(['recipient_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_distributorshipment_shipment_number'), 'distributorshipment', ['shipment_number'], unique=True)
    op.create_index(op.f('ix_distributorshipment_distributor_id'), 'distributorshipment', ['distributor_id'], unique=False)
    op.create_index(op.f('ix_distributorshipment_organization_id'), 'distributorshipment', ['organization_id'], unique=False)
    op.create_index(op.f('ix_distributorshipment_status'), 'distributorshipment', ['status'], unique=False)

    op.create_table(
        'distributorshipmentitem',
        *_timestamps(),
        _id(),
        sa.Column('shipment_id', sa.Uuid(), nullable=False),
        sa.Column('product_type', _enum(StockProductType), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        _str('product_name', nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', _enum(QuantityUnit), nullable=False),
        sa.Column('unit_price', sa.Float(), nullable=True),
        sa.Column('total_price', sa.Float(), nullable=True),
        _str('batch_number'),
        sa.ForeignKeyConstraint(['shipment_id'], ['distributorshipment.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_distributorshipmentitem_shipment_id'), 'distributorshipmentitem', ['shipment_id'], unique=False)

    op.create_table(
        'distributorverification',
        *_timestamps(),
        _id(),
        _str('verification_number', nullable=False),
        sa.Column('verification_type', _enum(VerificationType), nullable=False),
        sa.Column('entity_type', _enum(VerificationEntityType), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False),
        sa.Column('distributor_id', sa.Uuid(), nullable=False),
        sa.Column('organization_id', sa.Uuid(), nullable=False),
        sa.Column('status', _enum(VerificationStatus), nullable=False),
        _str('verification_method'),
        sa.Column('results', sa.JSON(), nullable=True),
        _str('notes'),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['distributor_id'], ['user.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_distributorverification_verification_number'), 'distributorverification', ['verification_number'], unique=True)
    op.create_index(op.f('ix_distributorverification_distributor_id'), 'distributorverification', ['distributor_id'], unique=False)
    op.create_index(op.f('ix_distributorverification_organization_id'), 'distributorverification', ['organization_id'], unique=False)

    op.create_table(
        'systemalert',
        *_timestamps(),
        _id(),
        _str('alert_type', nullable=False),
        sa.Column('severity', _enum(AlertSeverity), nullable=False),
        _str('title', nullable=False),
        _str('message', nullable=False),
        sa.Column('is_resolved', sa.Boolean(), nullable=False),
        sa.Column('resolved_by_id', sa.Uuid(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['resolved_by_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_systemalert_severity'), 'systemalert', ['severity'], unique=False)
    op.create_index(op.f('ix_systemalert_is_resolved'), 'systemalert', ['is_resolved'], unique=False)

    op.create_table(
        'adminaction',
        _id(),
        sa.Column('admin_id', sa.Uuid(), nullable=False),
        sa.Column('action_type', _enum(AdminActionType), nullable=False),
        _str('target_type', nullable=False),
        sa.Column('target_id', sa.Uuid(), nullable=False),
        _str('description', nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        _str('ip_address'),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['admin_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_adminaction_admin_id'), 'adminaction', ['admin_id'], unique=False)
    op.create_index(op.f('ix_adminaction_action_type'), 'adminaction', ['action_type'], unique=False)
    op.create_index(op.f('ix_adminaction_timestamp'), 'adminaction', ['timestamp'], unique=False)


def downgrade():
    for table in (
        'adminaction', 'systemalert', 'distributorverification', 'distributorshipmentitem',
        'distributorshipment', 'distributorinventory', 'document', 'qrcode', 'certificate',
        'labtest', 'supplychainevent', 'finishedgoodcomposition', 'finishedgood',
        'collectionevent', 'rawmaterialbatch', 'herbspecies', 'user', 'organization',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_cls in (
        AdminActionType, AlertSeverity, VerificationStatus, VerificationEntityType,
        VerificationType, ShipmentStatus, RecipientType, InventoryStatus, StockProductType,
        DocumentType, QREntityType, CertificateType, TestStatus, TestPriority, TestType,
        SupplyChainEventType, FinishedGoodProductType, RawMaterialBatchStatus, QuantityUnit,
        ConservationStatus, UserRole, OrgType,
    ):
        _enum(enum_cls).drop(bind, checkfirst=True)
