from bcadmin import db
from bcadmin.models import ColumnSetting
from bcadmin.pipeline.registry import infer_field_kind
from bcadmin.pipeline.schema import DEFAULT_COLUMN_LAYOUT


def seed_data():
    """Populates the column registry with the legacy commission layout."""
    if ColumnSetting.query.count() > 0:
        print('Column settings already configured; nothing to seed.')
        return

    print('Seeding default commission column settings...')
    for order, (column_key, header, is_required) in enumerate(DEFAULT_COLUMN_LAYOUT, start=1):
        setting = ColumnSetting(
            column_key=column_key, csv_header_name=header,
            field_kind=infer_field_kind(column_key),
            is_required=is_required, is_active=True, display_order=order * 10
        )
        db.session.add(setting)
        print(f'Seeding column: {column_key} <- "{header}"')

    db.session.commit()
    print('Seeding complete.')
