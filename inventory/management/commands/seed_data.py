"""
Management command to seed the database with sample pharmacy data.

Generates:
- The default pharmacy categories
- Sample products with stock levels, prices and expiry dates

Usage:
    python manage.py seed_data
    python manage.py seed_data --clear  # Clear existing data first
"""
import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from inventory.models import Category, Product

DEFAULT_CATEGORIES = [
    ('Medications', 'Prescription and over-the-counter medications'),
    ('Supplements', 'Vitamins and dietary supplements'),
    ('Medical Supplies', 'Bandages, syringes, and other medical supplies'),
    ('Personal Care', 'Personal hygiene and care products'),
    ('Baby Care', 'Baby products and care items'),
]

PRODUCT_TEMPLATES = {
    'Medications': [
        'Paracetamol 500mg', 'Ibuprofen 400mg', 'Amoxicillin 250mg',
        'Cetirizine 10mg', 'Omeprazole 20mg', 'Metformin 500mg',
        'Loratadine 10mg', 'Cough Syrup', 'Antacid Tablets', 'Aspirin 75mg'
    ],
    'Supplements': [
        'Vitamin C 1000mg', 'Vitamin D3', 'Multivitamin', 'Fish Oil Omega-3',
        'Calcium + D', 'Iron Tablets', 'Zinc 50mg', 'Folic Acid',
        'Probiotic Capsules', 'Vitamin B Complex'
    ],
    'Medical Supplies': [
        'Adhesive Bandages', 'Gauze Pads', 'Disposable Syringe 5ml',
        'Digital Thermometer', 'Face Masks', 'Surgical Gloves',
        'Cotton Wool', 'Elastic Bandage', 'Antiseptic Wipes', 'Blood Pressure Monitor'
    ],
    'Personal Care': [
        'Hand Sanitizer', 'Antibacterial Soap', 'Toothpaste', 'Mouthwash',
        'Sunscreen SPF50', 'Moisturizing Lotion', 'Lip Balm', 'Shampoo',
        'Deodorant', 'Dental Floss'
    ],
    'Baby Care': [
        'Baby Diapers', 'Baby Wipes', 'Diaper Rash Cream', 'Baby Lotion',
        'Infant Formula', 'Baby Shampoo', 'Teething Gel', 'Baby Powder',
        'Feeding Bottle', 'Nasal Aspirator'
    ],
}

SUPPLIERS = [
    'State Pharmaceuticals', 'HealthLine Distributors', 'MediCare Supplies',
    'Global Pharma Ltd', 'CarePlus Wholesale'
]


class Command(BaseCommand):
    help = 'Seed the database with sample pharmacy categories and products'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding',
        )
        parser.add_argument(
            '--products',
            type=int,
            default=100,
            help='Number of products to create (default: 100)',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self._clear_data()

        self.stdout.write('Starting database seeding...')

        with transaction.atomic():
            categories = self._create_categories()
            self._create_products(options['products'], categories)

        self.stdout.write(self.style.SUCCESS('Database seeding completed successfully!'))

    def _clear_data(self):
        """Clear all existing data."""
        from orders.models import OrderItem, Order

        OrderItem.objects.all().delete()
        Order.objects.all().delete()
        Product.objects.all().delete()
        Category.objects.all().delete()

        self.stdout.write(self.style.WARNING('All existing data cleared.'))

    def _create_categories(self):
        categories = []
        for name, description in DEFAULT_CATEGORIES:
            category, created = Category.objects.get_or_create(
                name=name,
                defaults={'description': description}
            )
            categories.append(category)
            if created:
                self.stdout.write(f'  Created category: {name}')

        self.stdout.write(self.style.SUCCESS(f'Created {len(categories)} categories'))
        return categories

    def _create_products(self, count, categories):
        """Create sample products with stock levels and expiry dates."""
        today = timezone.localdate()
        products = []

        self.stdout.write(f'Creating {count} products...')

        for i in range(count):
            category = random.choice(categories)
            base_name = random.choice(PRODUCT_TEMPLATES[category.name])

            # Some items are close to expiry to exercise alerts
            expiry_date = None
            if category.name in ('Medications', 'Supplements', 'Baby Care'):
                expiry_date = today + timedelta(days=random.randint(-10, 720))

            products.append(Product(
                name=f"{base_name} #{i + 1}",
                description=f"{base_name} from the {category.name.lower()} range.",
                category=category,
                quantity=random.randint(0, 200),
                price=Decimal(str(round(random.uniform(50, 5000), 2))),
                expiry_date=expiry_date,
                supplier=random.choice(SUPPLIERS),
                barcode=f"479{random.randint(10 ** 9, 10 ** 10 - 1)}",
            ))

        Product.objects.bulk_create(products, ignore_conflicts=True)

        self.stdout.write(self.style.SUCCESS(f'Created {Product.objects.count()} products'))
