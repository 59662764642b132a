from rest_framework import serializers
from django.db import DatabaseError, transaction

from .models import City, Product, ProductCity
from . import storage


class CitySerializer(serializers.ModelSerializer):
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = City
        fields = ['id', 'name', 'is_active', 'product_count']
        read_only_fields = ['product_count']

    def get_product_count(self, obj):
        return obj.product_links.count()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("City name is required.")
        queryset = City.objects.filter(name__iexact=value)
        if self.instance:
            queryset = queryset.exclude(id=self.instance.id)
        if queryset.exists():
            raise serializers.ValidationError("City with this name already exists.")
        return value


class SelectCitySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)

    def validate_name(self, value):
        city = City.objects.filter(name__iexact=value.strip(), is_active=True).first()
        if city is None:
            raise serializers.ValidationError("Select one of the available cities.")
        self.context['city'] = city
        return city.name


class ProductSerializer(serializers.ModelSerializer):
    cities = serializers.SerializerMethodField()
    discount_percent = serializers.IntegerField(read_only=True)
    is_fresh = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'category', 'mrp', 'selling_price', 'discount_percent',
            'image_url', 'expiry_date', 'quantity', 'is_hot_deal', 'is_fresh',
            'cities', 'created_at', 'updated_at'
        ]

    def get_cities(self, obj):
        return obj.city_names


class ProductCreateUpdateSerializer(serializers.ModelSerializer):
    """
    Admin write serializer.

    ``cities`` takes city names; names that match no city are dropped.
    An uploaded ``image_file`` replaces ``image_url``.
    """
    cities = serializers.ListField(
        child=serializers.CharField(max_length=100), required=False, write_only=True
    )
    image_file = serializers.FileField(required=False, write_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'category', 'mrp', 'selling_price', 'image_url',
            'expiry_date', 'quantity', 'is_hot_deal', 'cities', 'image_file'
        ]

    def validate_image_file(self, value):
        if not storage.is_image(value):
            raise serializers.ValidationError("Please upload an image file.")
        return value

    def _resolve_cities(self, names):
        wanted = {name.strip().lower() for name in names if name.strip()}
        return [city for city in City.objects.all() if city.name.lower() in wanted]

    def _set_cities(self, product, names):
        ProductCity.objects.filter(product=product).delete()
        ProductCity.objects.bulk_create([
            ProductCity(product=product, city=city) for city in self._resolve_cities(names)
        ])

    def _attach_image(self, product, image_file):
        # Runs last so a failed row write never leaves an unreferenced file
        saved_name = storage.save_product_image(image_file)
        try:
            product.image_url = storage.image_url(saved_name, self.context.get('request'))
            product.save(update_fields=['image_url', 'updated_at'])
        except DatabaseError:
            storage.delete_image(saved_name)
            raise

    @transaction.atomic
    def create(self, validated_data):
        city_names = validated_data.pop('cities', [])
        image_file = validated_data.pop('image_file', None)
        product = Product.objects.create(**validated_data)
        self._set_cities(product, city_names)
        if image_file is not None:
            self._attach_image(product, image_file)
        return product

    @transaction.atomic
    def update(self, instance, validated_data):
        city_names = validated_data.pop('cities', None)
        image_file = validated_data.pop('image_file', None)

        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        if city_names is not None:
            self._set_cities(instance, city_names)
        if image_file is not None:
            self._attach_image(instance, image_file)

        return instance

    def to_representation(self, instance):
        return ProductSerializer(instance, context=self.context).data


class ImageUploadSerializer(serializers.Serializer):
    file = serializers.FileField()

    def validate_file(self, value):
        if not storage.is_image(value):
            raise serializers.ValidationError("Please upload an image file.")
        return value
